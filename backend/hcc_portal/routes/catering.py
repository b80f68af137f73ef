from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import MealType, Profile, ProfileRole
from hcc_portal.security.auth import require_admin, require_caterer, require_roles, require_staff
from hcc_portal.services.catering_service import CateringService, get_catering_service


class MealJobRequest(BaseModel):
    service_date: date
    meal: MealType
    service_time: Optional[time] = None
    counts_total: int = Field(default=0, ge=0)
    counts_by_diet: Dict[str, Any] = Field(default_factory=dict)


class CatererAssignment(BaseModel):
    caterer_id: Optional[int] = None


class MenuSelection(BaseModel):
    menu_item_ids: List[int] = Field(default_factory=list)


class CoffeeRequest(BaseModel):
    percolated_coffee: bool
    quantity: Optional[int] = Field(default=None, ge=1)


class DeclineRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class ChangeRequest(BaseModel):
    request: str = Field(..., min_length=1, max_length=2000)


class CommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


router = APIRouter(prefix="/catering", tags=["catering"])

require_catering_party = require_roles(ProfileRole.ADMIN, ProfileRole.STAFF, ProfileRole.CATERER)


@router.get("/caterers", dependencies=[Depends(require_admin)])
async def list_caterers(
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    return {"caterers": [caterer.to_dict() for caterer in await service.list_caterers(db)]}


@router.get("/menu-items", dependencies=[Depends(require_catering_party)])
async def list_menu_items(
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    return {"menu_items": [item.to_dict() for item in await service.list_menu_items(db)]}


@router.get("/bookings/{booking_id}/jobs", dependencies=[Depends(require_staff)])
async def list_booking_jobs(
    booking_id: int,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    return {"meal_jobs": await service.list_for_booking(db, booking_id)}


@router.post("/bookings/{booking_id}/jobs", status_code=201, dependencies=[Depends(require_admin)])
async def create_job(
    booking_id: int,
    payload: MealJobRequest,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    job = await service.create_job(
        db,
        booking_id,
        payload.service_date,
        payload.meal,
        service_time=payload.service_time,
        counts_total=payload.counts_total,
        counts_by_diet=payload.counts_by_diet,
    )
    return {"meal_job": await service.describe_job(db, job.id)}


@router.put("/bookings/{booking_id}/days/{service_date}/caterer", dependencies=[Depends(require_admin)])
async def assign_caterer_to_day(
    booking_id: int,
    service_date: date,
    payload: CatererAssignment,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    jobs = await service.assign_caterer_to_day(db, booking_id, service_date, payload.caterer_id)
    return {"success": True, "updated": len(jobs)}


@router.put("/jobs/{job_id}/caterer", dependencies=[Depends(require_admin)])
async def assign_caterer(
    job_id: int,
    payload: CatererAssignment,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    job = await service.assign_caterer(db, job_id, payload.caterer_id)
    return {"meal_job": await service.describe_job(db, job.id)}


@router.put("/jobs/{job_id}/menu-items", dependencies=[Depends(require_admin)])
async def update_menu_items(
    job_id: int,
    payload: MenuSelection,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.update_menu_items(db, job_id, payload.menu_item_ids)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.put("/jobs/{job_id}/coffee", dependencies=[Depends(require_admin)])
async def update_coffee(
    job_id: int,
    payload: CoffeeRequest,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.update_coffee(db, job_id, payload.percolated_coffee, payload.quantity)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.post("/jobs/{job_id}/clear-changes", dependencies=[Depends(require_staff)])
async def clear_change_request(
    job_id: int,
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.clear_change_request(db, job_id)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.get("/my-jobs")
async def list_my_jobs(
    caterer: Profile = Depends(require_caterer),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    return {"meal_jobs": await service.list_for_caterer(db, caterer)}


@router.post("/jobs/{job_id}/confirm")
async def confirm_job(
    job_id: int,
    caterer: Profile = Depends(require_caterer),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.confirm(db, job_id, caterer)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.post("/jobs/{job_id}/decline")
async def decline_job(
    job_id: int,
    payload: DeclineRequest,
    caterer: Profile = Depends(require_caterer),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.decline(db, job_id, caterer, payload.reason)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.post("/jobs/{job_id}/request-changes")
async def request_changes(
    job_id: int,
    payload: ChangeRequest,
    caterer: Profile = Depends(require_caterer),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    await service.request_changes(db, job_id, caterer, payload.request)
    return {"meal_job": await service.describe_job(db, job_id)}


@router.get("/jobs/{job_id}/comments")
async def list_comments(
    job_id: int,
    viewer: Profile = Depends(require_catering_party),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    comments = await service.list_comments(db, job_id, viewer)
    return {"comments": [comment.to_dict() for comment in comments]}


@router.post("/jobs/{job_id}/comments", status_code=201)
async def add_comment(
    job_id: int,
    payload: CommentRequest,
    author: Profile = Depends(require_catering_party),
    db: AsyncSession = Depends(get_session),
    service: CateringService = Depends(get_catering_service),
) -> Dict[str, Any]:
    comment = await service.add_comment(db, job_id, author, payload.content)
    return {"comment": comment.to_dict()}
