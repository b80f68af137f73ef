from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import Profile, RoomAction
from hcc_portal.security.auth import require_staff
from hcc_portal.services.room_ops_service import RoomOpsService, get_room_ops_service


class RoomActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action_date: Optional[date] = Field(default=None, alias="date")
    booking_id: Optional[int] = None


router = APIRouter(prefix="/staff/rooms", tags=["rooms"])


@router.get("/status")
async def status_board(
    day: Optional[date] = Query(default=None, alias="date"),
    staff: Profile = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    service: RoomOpsService = Depends(get_room_ops_service),
) -> Dict[str, Any]:
    return await service.get_status_board(db, day or date.today())


@router.post("/{room_id}/cleaned")
async def mark_cleaned(
    room_id: str,
    payload: RoomActionRequest,
    staff: Profile = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    service: RoomOpsService = Depends(get_room_ops_service),
) -> Dict[str, Any]:
    log = await service.mark_cleaned(db, room_id, payload.action_date or date.today(), staff, payload.booking_id)
    return {"success": True, "log": log.to_dict()}


@router.post("/{room_id}/setup-complete")
async def mark_setup_complete(
    room_id: str,
    payload: RoomActionRequest,
    staff: Profile = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    service: RoomOpsService = Depends(get_room_ops_service),
) -> Dict[str, Any]:
    log = await service.mark_setup_complete(
        db, room_id, payload.action_date or date.today(), staff, payload.booking_id
    )
    return {"success": True, "log": log.to_dict()}


@router.delete("/{room_id}/actions/{action}")
async def undo_action(
    room_id: str,
    action: RoomAction,
    day: Optional[date] = Query(default=None, alias="date"),
    staff: Profile = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    service: RoomOpsService = Depends(get_room_ops_service),
) -> Dict[str, Any]:
    removed = await service.undo_action(db, room_id, day or date.today(), action)
    if not removed:
        raise HTTPException(status_code=404, detail="No matching room action")
    return {"success": True}
