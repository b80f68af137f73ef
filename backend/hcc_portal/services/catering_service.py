from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.models import (
    Booking,
    Caterer,
    CommentAuthorRole,
    MealJob,
    MealJobComment,
    MealJobItem,
    MealJobStatus,
    MealType,
    MenuItem,
    Profile,
    ProfileRole,
)
from hcc_portal.services.errors import NotFoundError, PermissionDeniedError, ServiceError
from hcc_portal.stores.event_bus import EventBus, event_bus

logger = logging.getLogger(__name__)


class CateringService:
    """Meal jobs for bookings, their caterer assignment and the comment thread."""

    def __init__(self, bus: EventBus | None = None) -> None:
        self.bus = bus or event_bus

    async def _publish(self, event_type: str, job: MealJob, **extra: Any) -> None:
        await self.bus.publish(
            "catering",
            {"type": event_type, "meal_job_id": job.id, "booking_id": job.booking_id, "status": job.status.value, **extra},
        )

    async def get_job(self, session: AsyncSession, job_id: int) -> MealJob:
        job = await session.get(MealJob, job_id)
        if not job:
            raise NotFoundError("Meal job not found")
        return job

    async def _own_job(self, session: AsyncSession, job_id: int, caterer: Profile) -> MealJob:
        job = await self.get_job(session, job_id)
        if caterer.caterer_id is None or job.assigned_caterer_id != caterer.caterer_id:
            raise PermissionDeniedError("This meal job is not assigned to you")
        return job

    async def _get_caterer(self, session: AsyncSession, caterer_id: int) -> Caterer:
        caterer = await session.get(Caterer, caterer_id)
        if not caterer or not caterer.active:
            raise NotFoundError("Caterer not found")
        return caterer

    async def list_caterers(self, session: AsyncSession, include_inactive: bool = False) -> List[Caterer]:
        stmt = select(Caterer).order_by(Caterer.name)
        if not include_inactive:
            stmt = stmt.where(Caterer.active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def list_menu_items(self, session: AsyncSession) -> List[MenuItem]:
        result = await session.execute(select(MenuItem).order_by(MenuItem.label))
        return list(result.scalars().all())

    async def create_job(
        self,
        session: AsyncSession,
        booking_id: int,
        service_date: date,
        meal: MealType,
        service_time: Optional[time] = None,
        counts_total: int = 0,
        counts_by_diet: Optional[Dict[str, Any]] = None,
    ) -> MealJob:
        booking = await session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if not booking.arrival_date <= service_date <= booking.departure_date:
            raise ServiceError("Meal date must fall within the booking's stay.", 400)

        job = MealJob(
            booking_id=booking.id,
            service_date=service_date,
            meal=meal,
            service_time=service_time,
            counts_total=counts_total or booking.headcount,
            counts_by_diet=counts_by_diet or {},
            status=MealJobStatus.DRAFT,
        )
        session.add(job)
        await session.commit()
        await self._publish("meal_job.created", job)
        return job

    # Admin

    async def assign_caterer(self, session: AsyncSession, job_id: int, caterer_id: Optional[int]) -> MealJob:
        job = await self.get_job(session, job_id)
        if caterer_id is not None:
            await self._get_caterer(session, caterer_id)
        job.assigned_caterer_id = caterer_id
        job.status = MealJobStatus.ASSIGNED if caterer_id is not None else MealJobStatus.DRAFT
        await session.commit()
        logger.info("caterer_assigned", extra={"meal_job_id": job.id, "caterer_id": caterer_id})
        await self._publish("meal_job.assigned", job, caterer_id=caterer_id)
        return job

    async def assign_caterer_to_day(
        self,
        session: AsyncSession,
        booking_id: int,
        service_date: date,
        caterer_id: Optional[int],
    ) -> List[MealJob]:
        if caterer_id is not None:
            await self._get_caterer(session, caterer_id)
        result = await session.execute(
            select(MealJob).where(MealJob.booking_id == booking_id, MealJob.service_date == service_date)
        )
        jobs = list(result.scalars().all())
        for job in jobs:
            job.assigned_caterer_id = caterer_id
            job.status = MealJobStatus.ASSIGNED if caterer_id is not None else MealJobStatus.DRAFT
        await session.commit()
        logger.info(
            "caterer_assigned_to_day",
            extra={"booking_id": booking_id, "service_date": service_date.isoformat(), "jobs": len(jobs)},
        )
        for job in jobs:
            await self._publish("meal_job.assigned", job, caterer_id=caterer_id)
        return jobs

    async def update_menu_items(self, session: AsyncSession, job_id: int, menu_item_ids: Iterable[int]) -> List[int]:
        job = await self.get_job(session, job_id)
        wanted = list(dict.fromkeys(menu_item_ids))
        if wanted:
            found = await session.execute(select(MenuItem.id).where(MenuItem.id.in_(wanted)))
            missing = set(wanted) - set(found.scalars().all())
            if missing:
                raise NotFoundError(f"Menu items not found: {sorted(missing)}")

        await session.execute(delete(MealJobItem).where(MealJobItem.meal_job_id == job.id))
        for item_id in wanted:
            session.add(MealJobItem(meal_job_id=job.id, menu_item_id=item_id))
        await session.commit()
        await self._publish("meal_job.menu_updated", job)
        return wanted

    async def update_coffee(
        self,
        session: AsyncSession,
        job_id: int,
        requested: bool,
        quantity: Optional[int] = None,
    ) -> MealJob:
        job = await self.get_job(session, job_id)
        job.percolated_coffee = requested
        job.percolated_coffee_quantity = quantity if requested else None
        await session.commit()
        return job

    async def clear_change_request(self, session: AsyncSession, job_id: int) -> MealJob:
        job = await self.get_job(session, job_id)
        job.changes_requested = False
        await session.commit()
        await self._publish("meal_job.changes_cleared", job)
        return job

    # Caterer

    async def confirm(self, session: AsyncSession, job_id: int, caterer: Profile) -> MealJob:
        job = await self._own_job(session, job_id, caterer)
        job.status = MealJobStatus.CONFIRMED
        job.changes_requested = False
        await session.commit()
        await self._publish("meal_job.confirmed", job)
        return job

    async def decline(self, session: AsyncSession, job_id: int, caterer: Profile, reason: Optional[str] = None) -> MealJob:
        job = await self._own_job(session, job_id, caterer)
        job.status = MealJobStatus.PENDING_ASSIGNMENT
        job.assigned_caterer_id = None
        job.changes_requested = False
        if reason:
            session.add(self._comment(job, caterer, f"Declined assignment: {reason}"))
        await session.commit()
        logger.info("meal_job_declined", extra={"meal_job_id": job.id, "caterer_id": caterer.caterer_id})
        await self._publish("meal_job.declined", job)
        return job

    async def request_changes(self, session: AsyncSession, job_id: int, caterer: Profile, request: str) -> MealJob:
        job = await self._own_job(session, job_id, caterer)
        job.changes_requested = True
        session.add(self._comment(job, caterer, f"Change requested: {request}"))
        await session.commit()
        await self._publish("meal_job.changes_requested", job)
        return job

    # Comments

    def _comment(self, job: MealJob, author: Profile, content: str) -> MealJobComment:
        role = CommentAuthorRole.CATERER if author.role == ProfileRole.CATERER else CommentAuthorRole.ADMIN
        return MealJobComment(meal_job_id=job.id, author_id=author.id, author_role=role, content=content)

    async def _visible_job(self, session: AsyncSession, job_id: int, viewer: Profile) -> MealJob:
        if viewer.role == ProfileRole.CATERER:
            return await self._own_job(session, job_id, viewer)
        return await self.get_job(session, job_id)

    async def add_comment(self, session: AsyncSession, job_id: int, author: Profile, content: str) -> MealJobComment:
        job = await self._visible_job(session, job_id, author)
        comment = self._comment(job, author, content)
        session.add(comment)
        await session.commit()
        await self._publish("meal_job.commented", job, author_role=comment.author_role.value)
        return comment

    async def list_comments(self, session: AsyncSession, job_id: int, viewer: Profile) -> List[MealJobComment]:
        job = await self._visible_job(session, job_id, viewer)
        result = await session.execute(
            select(MealJobComment)
            .where(MealJobComment.meal_job_id == job.id)
            .order_by(MealJobComment.created_at, MealJobComment.id)
        )
        return list(result.scalars().all())

    # Listings

    async def _serialize(self, session: AsyncSession, jobs: List[MealJob]) -> List[Dict[str, Any]]:
        if not jobs:
            return []
        job_ids = [job.id for job in jobs]
        items = await session.execute(
            select(MealJobItem.meal_job_id, MenuItem.id, MenuItem.label)
            .join(MenuItem, MenuItem.id == MealJobItem.menu_item_id)
            .where(MealJobItem.meal_job_id.in_(job_ids))
            .order_by(MenuItem.label)
        )
        menu: Dict[int, List[Dict[str, Any]]] = {}
        for job_id, item_id, label in items.all():
            menu.setdefault(job_id, []).append({"id": item_id, "label": label})

        caterer_ids = {job.assigned_caterer_id for job in jobs if job.assigned_caterer_id is not None}
        names: Dict[int, str] = {}
        if caterer_ids:
            result = await session.execute(select(Caterer.id, Caterer.name).where(Caterer.id.in_(caterer_ids)))
            names = {caterer_id: name for caterer_id, name in result.all()}

        return [
            {
                "id": job.id,
                "booking_id": job.booking_id,
                "service_date": job.service_date.isoformat(),
                "meal": job.meal.value,
                "service_time": job.service_time.strftime("%H:%M") if job.service_time else None,
                "counts_total": job.counts_total,
                "counts_by_diet": job.counts_by_diet or {},
                "percolated_coffee": job.percolated_coffee,
                "percolated_coffee_quantity": job.percolated_coffee_quantity,
                "assigned_caterer_id": job.assigned_caterer_id,
                "caterer_name": names.get(job.assigned_caterer_id) if job.assigned_caterer_id else None,
                "status": job.status.value,
                "changes_requested": job.changes_requested,
                "menu_items": menu.get(job.id, []),
            }
            for job in jobs
        ]

    async def describe_job(self, session: AsyncSession, job_id: int) -> Dict[str, Any]:
        job = await self.get_job(session, job_id)
        return (await self._serialize(session, [job]))[0]

    async def list_for_booking(self, session: AsyncSession, booking_id: int) -> List[Dict[str, Any]]:
        result = await session.execute(
            select(MealJob).where(MealJob.booking_id == booking_id).order_by(MealJob.service_date, MealJob.service_time, MealJob.id)
        )
        return await self._serialize(session, list(result.scalars().all()))

    async def list_for_caterer(self, session: AsyncSession, caterer: Profile) -> List[Dict[str, Any]]:
        if caterer.caterer_id is None:
            return []
        result = await session.execute(
            select(MealJob)
            .where(MealJob.assigned_caterer_id == caterer.caterer_id)
            .order_by(MealJob.service_date, MealJob.service_time, MealJob.id)
        )
        return await self._serialize(session, list(result.scalars().all()))


def get_catering_service() -> CateringService:
    return CateringService()
