from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hcc_portal.db.database import get_session
from hcc_portal.models import Room, RoomType, Space


router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.get("/spaces")
async def list_spaces(session: AsyncSession = Depends(get_session)) -> list[dict]:
    result = await session.execute(select(Space).where(Space.active.is_(True)).order_by(Space.name))
    return [space.to_dict() for space in result.scalars().all()]


@router.get("/room-types")
async def list_room_types(session: AsyncSession = Depends(get_session)) -> list[dict]:
    result = await session.execute(select(RoomType).order_by(RoomType.name))
    return [room_type.to_dict() for room_type in result.scalars().all()]


@router.get("/rooms")
async def list_rooms(session: AsyncSession = Depends(get_session)) -> list[dict]:
    result = await session.execute(
        select(Room).where(Room.active.is_(True)).order_by(Room.room_number, Room.id)
    )
    return [room.to_dict() for room in result.unique().scalars().all()]
