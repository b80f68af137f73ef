from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from hcc_portal.security.tokens import generate_reference
from hcc_portal.services.errors import ServiceError

logger = logging.getLogger(__name__)

REFERENCE_ATTEMPTS = 5


async def next_reference(
    session: AsyncSession,
    column: InstrumentedAttribute,
    prefix: str,
    year: Optional[int] = None,
) -> str:
    """Next ``PREFIX-YYYY-NNNN`` reference for the rows behind ``column``."""

    year = year or datetime.now(timezone.utc).year
    stem = f"{prefix}-{year}-"
    result = await session.execute(select(column).where(column.like(f"{stem}%")))
    sequences = [
        int(value[len(stem):])
        for value in result.scalars()
        if value and value[len(stem):].isdigit()
    ]
    return generate_reference(prefix, max(sequences, default=0) + 1, year)


async def commit_with_reference(
    session: AsyncSession,
    row: Any,
    column: InstrumentedAttribute,
    prefix: str,
    attempts: int = REFERENCE_ATTEMPTS,
) -> str:
    """Add ``row`` under the next free reference and commit it.

    A concurrent writer may take the same number between the read and the
    commit; the unique index rejects the second insert and the number is
    recomputed.
    """

    for attempt in range(1, attempts + 1):
        reference = await next_reference(session, column, prefix)
        setattr(row, column.key, reference)
        session.add(row)
        try:
            await session.commit()
        except IntegrityError as error:
            await session.rollback()
            logger.warning(
                "reference_collision",
                extra={"reference": reference, "attempt": attempt, "error": str(error.orig)},
            )
            continue
        return reference

    raise ServiceError("Could not allocate a reference, please try again.", 503)
