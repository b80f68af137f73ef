"""create centre operations schema

Revision ID: 20250301_01
Revises:
Create Date: 2025-03-01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20250301_01"
down_revision = None
branch_labels = None
depends_on = None

BOOKING_STATUS = (
    "Pending", "InTriage", "Approved", "Confirmed", "DepositPending",
    "DepositReceived", "InProgress", "Completed", "Cancelled", "AwaitingDetails",
)
ENQUIRY_STATUS = ("new", "in_discussion", "quoted", "ready_to_book", "converted_to_booking", "lost")
NOTE_TYPES = ("note", "phone_call", "email", "status_change", "quote_created", "system")
MEAL_TYPES = ("Breakfast", "Morning Tea", "Lunch", "Afternoon Tea", "Dinner")
MEAL_JOB_STATUS = (
    "Draft", "PendingAssignment", "Assigned", "Confirmed", "InPrep", "Served", "Completed", "Cancelled",
)


JSONB = postgresql.JSONB(astext_type=sa.Text())
EMPTY_OBJECT = sa.text("'{}'::jsonb")
EMPTY_LIST = sa.text("'[]'::jsonb")


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP"))


def upgrade() -> None:
    op.create_table(
        "caterers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column(
            "role",
            sa.Enum("admin", "staff", "caterer", "customer", name="profile_role"),
            nullable=False,
            server_default="customer",
        ),
        sa.Column("caterer_id", sa.Integer(), sa.ForeignKey("caterers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("booking_reference", sa.String(length=32), nullable=True),
        sa.Column("api_key_hash", sa.String(length=64), nullable=True),
        _created_at(),
    )
    op.create_index("ix_profiles_api_key_hash", "profiles", ["api_key_hash"], unique=True)

    op.create_table(
        "spaces",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "room_types",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("nightly_rate", sa.Numeric(10, 2), nullable=True),
    )

    op.create_table(
        "rooms",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("room_number", sa.String(length=16), nullable=True),
        sa.Column("building", sa.String(length=64), nullable=True),
        sa.Column("level", sa.String(length=16), nullable=True),
        sa.Column("wing", sa.String(length=64), nullable=True),
        sa.Column("room_type_id", sa.String(length=64), sa.ForeignKey("room_types.id", ondelete="SET NULL"), nullable=True),
        sa.Column("base_beds", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("extra_bed_allowed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "enquiries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reference_number", sa.String(length=32), nullable=True),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=32), nullable=True),
        sa.Column("organization", sa.String(length=200), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("approximate_start_date", sa.Date(), nullable=True),
        sa.Column("approximate_end_date", sa.Date(), nullable=True),
        sa.Column("estimated_guests", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("status", sa.Enum(*ENQUIRY_STATUS, name="enquiry_status"), nullable=False, server_default="new"),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("quoted_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("lost_reason", sa.Text(), nullable=True),
        sa.Column("converted_to_booking_id", sa.Integer(), nullable=True),
        sa.Column("submitted_from_ip", sa.String(length=64), nullable=True),
        sa.Column("submission_duration_seconds", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_enquiries_reference_number", "enquiries", ["reference_number"], unique=True)
    op.create_index("ix_enquiries_status", "enquiries", ["status"])
    op.create_index("ix_enquiries_converted_to_booking_id", "enquiries", ["converted_to_booking_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reference", sa.String(length=32), nullable=True),
        sa.Column("source", sa.Enum("portal", "admin_created", name="booking_source"), nullable=False, server_default="portal"),
        sa.Column("booking_type", sa.Enum("Group", "Individual", name="booking_type"), nullable=False, server_default="Group"),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("contact_name", sa.String(length=255), nullable=True),
        sa.Column("contact_phone", sa.String(length=32), nullable=True),
        sa.Column("organization", sa.String(length=255), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=True),
        sa.Column("event_name", sa.String(length=255), nullable=True),
        sa.Column("arrival_date", sa.Date(), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("nights", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("headcount", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("minors", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("whole_centre", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_overnight", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("catering_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("accommodation_requests", JSONB, nullable=True, server_default=EMPTY_OBJECT),
        sa.Column("requested_spaces", JSONB, nullable=True, server_default=EMPTY_LIST),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum(*BOOKING_STATUS, name="booking_status"), nullable=False, server_default="Pending"),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        sa.Column("deposit_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "deposit_status",
            sa.Enum("Pending", "Paid", "Failed", "Cancelled", name="deposit_status"),
            nullable=False,
            server_default="Pending",
        ),
        sa.Column("deposit_received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deposit_reference", sa.String(length=128), nullable=True),
        sa.Column("discount_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("custom_pricing_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("custom_pricing_notes", sa.Text(), nullable=True),
        sa.Column("custom_pricing_token_hash", sa.String(length=64), nullable=True),
        sa.Column("custom_pricing_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("guest_token_hash", sa.String(length=64), nullable=True),
        sa.Column("customer_profile_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_bookings_reference", "bookings", ["reference"], unique=True)
    op.create_index("ix_bookings_customer_email", "bookings", ["customer_email"])
    op.create_index("ix_bookings_status", "bookings", ["status"])

    op.create_table(
        "space_reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("space_id", sa.String(length=64), sa.ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("status", sa.Enum("Held", "Confirmed", name="space_res_status"), nullable=False, server_default="Held"),
    )
    op.create_index("ix_space_reservations_booking_id", "space_reservations", ["booking_id"])
    op.create_index("ix_space_reservations_space_id", "space_reservations", ["space_id"])
    op.create_index("ix_space_reservations_service_date", "space_reservations", ["service_date"])

    op.create_table(
        "room_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("room_id", sa.String(length=64), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("guest_names", JSONB, nullable=True, server_default=EMPTY_LIST),
        sa.Column("extra_bed_selected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ensuite_selected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("private_study_selected", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("booking_id", "room_id", name="uq_room_assignment_booking_room"),
    )
    op.create_index("ix_room_assignments_booking_id", "room_assignments", ["booking_id"])
    op.create_index("ix_room_assignments_room_id", "room_assignments", ["room_id"])

    op.create_table(
        "room_status_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("room_id", sa.String(length=64), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action_date", sa.Date(), nullable=False),
        sa.Column("action_type", sa.Enum("cleaned", "setup_complete", name="room_action"), nullable=False),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("performed_by", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        _created_at(),
        sa.UniqueConstraint("room_id", "action_date", "action_type", name="uq_room_status_log_action"),
    )
    op.create_index("ix_room_status_logs_action_date", "room_status_logs", ["action_date"])

    op.create_table(
        "enquiry_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("author_name", sa.String(length=255), nullable=False),
        sa.Column("note_type", sa.Enum(*NOTE_TYPES, name="enquiry_note_type"), nullable=False, server_default="note"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB, nullable=True, server_default=EMPTY_OBJECT),
        _created_at(),
    )
    op.create_index("ix_enquiry_notes_enquiry_id", "enquiry_notes", ["enquiry_id"])

    op.create_table(
        "enquiry_quotes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("reason_for_change", sa.Text(), nullable=True),
        sa.Column("is_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_by_name", sa.String(length=255), nullable=False),
        _created_at(),
        sa.UniqueConstraint("enquiry_id", "version_number", name="uq_enquiry_quote_version"),
    )
    op.create_index("ix_enquiry_quotes_enquiry_id", "enquiry_quotes", ["enquiry_id"])

    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("allergens", JSONB, nullable=True, server_default=EMPTY_LIST),
        sa.Column("dietary_tags", JSONB, nullable=True, server_default=EMPTY_LIST),
        sa.Column("default_caterer_id", sa.Integer(), sa.ForeignKey("caterers.id", ondelete="SET NULL"), nullable=True),
    )

    op.create_table(
        "meal_jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("service_date", sa.Date(), nullable=False),
        sa.Column("meal", sa.Enum(*MEAL_TYPES, name="meal_type"), nullable=False),
        sa.Column("service_time", sa.Time(), nullable=True),
        sa.Column("counts_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("counts_by_diet", JSONB, nullable=True, server_default=EMPTY_OBJECT),
        sa.Column("percolated_coffee", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("percolated_coffee_quantity", sa.Integer(), nullable=True),
        sa.Column("assigned_caterer_id", sa.Integer(), sa.ForeignKey("caterers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.Enum(*MEAL_JOB_STATUS, name="meal_job_status"), nullable=False, server_default="Draft"),
        sa.Column("changes_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_meal_jobs_booking_id", "meal_jobs", ["booking_id"])
    op.create_index("ix_meal_jobs_service_date", "meal_jobs", ["service_date"])
    op.create_index("ix_meal_jobs_assigned_caterer_id", "meal_jobs", ["assigned_caterer_id"])

    op.create_table(
        "meal_job_items",
        sa.Column("meal_job_id", sa.Integer(), sa.ForeignKey("meal_jobs.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("menu_item_id", sa.Integer(), sa.ForeignKey("menu_items.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "meal_job_comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("meal_job_id", sa.Integer(), sa.ForeignKey("meal_jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True),
        sa.Column("author_role", sa.Enum("admin", "caterer", name="comment_author_role"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_meal_job_comments_meal_job_id", "meal_job_comments", ["meal_job_id"])

    op.create_table(
        "rooming_groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("preferred_room_type", sa.String(length=64), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("draft", "submitted", name="rooming_group_status"),
            nullable=False,
            server_default="draft",
        ),
        _created_at(),
    )
    op.create_index("ix_rooming_groups_booking_id", "rooming_groups", ["booking_id"])

    op.create_table(
        "guests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "rooming_group_id",
            sa.Integer(),
            sa.ForeignKey("rooming_groups.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        _created_at(),
    )
    op.create_index("ix_guests_booking_id", "guests", ["booking_id"])
    op.create_index("ix_guests_rooming_group_id", "guests", ["rooming_group_id"])

    op.create_table(
        "dietary_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer(), sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("person_name", sa.String(length=255), nullable=False),
        sa.Column("diet_type", sa.String(length=64), nullable=False),
        sa.Column("allergy", sa.String(length=255), nullable=True),
        sa.Column("severity", sa.Enum("Low", "Moderate", "High", "Fatal", name="severity"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_dietary_profiles_booking_id", "dietary_profiles", ["booking_id"])


def downgrade() -> None:
    for table in (
        "dietary_profiles",
        "guests",
        "rooming_groups",
        "meal_job_comments",
        "meal_job_items",
        "meal_jobs",
        "menu_items",
        "enquiry_quotes",
        "enquiry_notes",
        "room_status_logs",
        "room_assignments",
        "space_reservations",
        "bookings",
        "enquiries",
        "rooms",
        "room_types",
        "spaces",
        "profiles",
        "caterers",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_name in (
        "severity",
        "rooming_group_status",
        "comment_author_role",
        "meal_job_status",
        "meal_type",
        "enquiry_note_type",
        "room_action",
        "space_res_status",
        "deposit_status",
        "booking_status",
        "booking_type",
        "booking_source",
        "enquiry_status",
        "profile_role",
    ):
        sa.Enum(name=enum_name).drop(bind, checkfirst=True)
