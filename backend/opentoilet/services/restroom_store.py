"""
OpenToilet Backend — Restroom Store (Data Access)
===================================================

What:  The only module that issues SQL against locations, restrooms and
       access_codes.
How:   A RestroomStore wraps one AsyncSession. Route handlers receive a store
       per request (see get_restroom_store); tests build one over their own
       session.
Errors:
    IntegrityError on access_codes → ConflictError (duplicate code)
    any other SQLAlchemyError      → InternalError (driver message passed through)

Read path:
    SELECT restroom, location, access_code
    FROM restrooms JOIN locations LEFT JOIN access_codes
    ORDER BY location.created_at DESC, restroom.created_at DESC, code.id
    → grouped per restroom in Python; the all-NULL access_code half of the
      row emitted for a restroom without codes is dropped.
"""

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from fastapi import Depends
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from opentoilet.database import get_db_session
from opentoilet.exceptions import ConflictError, InternalError, OpenToiletError
from opentoilet.models import AccessCode, Location, Restroom
from opentoilet.schemas.restroom import (
    AccessCodeResponse,
    LocationResponse,
    RestroomResponse,
)

logger = logging.getLogger(__name__)

DUPLICATE_CODE_MESSAGE = "This code already exists for this restroom"

# Degrees. Coordinates exactly one tolerance apart must not match, but the
# binary difference of two decimal inputs can land just under it
# (40.7129 - 40.7128 == 9.99999999962e-05).
FLOAT_SLACK = 1e-9


def hydrate(
    restroom: Restroom,
    location: Location,
    codes: Optional[List[AccessCode]] = None,
) -> RestroomResponse:
    """Build the API representation of a restroom from its rows."""
    return RestroomResponse(
        id=restroom.id,
        location_id=restroom.location_id,
        name=restroom.name,
        type=restroom.type,
        latitude=location.latitude,
        longitude=location.longitude,
        created_at=restroom.created_at,
        location=LocationResponse.model_validate(location),
        access_codes=[AccessCodeResponse.model_validate(c) for c in codes or []],
    )


class RestroomStore:
    """Data-access object over one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except OpenToiletError:
            raise
        except SQLAlchemyError as e:
            logger.error("Store failure while %s: %s", operation, e)
            raise InternalError(
                message=str(getattr(e, "orig", None) or e),
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

    # ── Locations ─────────────────────────────────────────────────────────

    async def find_location_near(
        self, latitude: float, longitude: float, tolerance: float
    ) -> Optional[Location]:
        """
        Lowest-id Location within `tolerance` degrees on both axes.

        This is a box, not a radius: each axis is compared independently.
        """
        max_delta = tolerance - FLOAT_SLACK
        stmt = (
            select(Location)
            .where(
                func.abs(Location.latitude - latitude) < max_delta,
                func.abs(Location.longitude - longitude) < max_delta,
            )
            .order_by(Location.id.asc())
            .limit(1)
        )
        with self._store_errors("matching locations"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def create_location(
        self, name: str, latitude: float, longitude: float
    ) -> Location:
        location = Location(name=name, latitude=latitude, longitude=longitude, address=None)
        with self._store_errors("creating location"):
            self.session.add(location)
            await self.session.flush()
        return location

    # ── Restrooms ─────────────────────────────────────────────────────────

    async def create_restroom(self, location_id: int, name: str, type: str) -> Restroom:
        restroom = Restroom(location_id=location_id, name=name, type=type)
        with self._store_errors("creating restroom"):
            self.session.add(restroom)
            await self.session.flush()
        return restroom

    async def restroom_exists(self, restroom_id: int) -> bool:
        with self._store_errors("looking up restroom"):
            result = await self.session.execute(
                select(Restroom.id).where(Restroom.id == restroom_id)
            )
            return result.scalar_one_or_none() is not None

    async def rename_restroom(self, restroom_id: int, name: str) -> bool:
        """Returns False when no restroom has this id."""
        stmt = (
            update(Restroom)
            .where(Restroom.id == restroom_id)
            .values(name=name)
            .execution_options(synchronize_session=False)
        )
        with self._store_errors("renaming restroom"):
            result = await self.session.execute(stmt)
            return result.rowcount > 0

    async def list_restrooms(self, restroom_id: Optional[int] = None) -> List[RestroomResponse]:
        """
        All restrooms (or just one) with their Location and access codes.

        Newest Location first, then newest Restroom within it.
        """
        stmt = (
            select(Restroom, Location, AccessCode)
            .join(Location, Restroom.location_id == Location.id)
            .outerjoin(AccessCode, AccessCode.restroom_id == Restroom.id)
            .order_by(
                Location.created_at.desc(),
                Location.id.desc(),
                Restroom.created_at.desc(),
                Restroom.id.desc(),
                AccessCode.id.asc(),
            )
            # Bulk UPDATEs (rename, votes) bypass the identity map
            .execution_options(populate_existing=True)
        )
        if restroom_id is not None:
            stmt = stmt.where(Restroom.id == restroom_id)

        with self._store_errors("listing restrooms"):
            result = await self.session.execute(stmt)
            rows = result.all()

        grouped: Dict[int, dict] = {}
        for restroom, location, code in rows:
            entry = grouped.setdefault(
                restroom.id, {"restroom": restroom, "location": location, "codes": []}
            )
            # LEFT JOIN placeholder for a restroom with no codes
            if code is None or code.id is None:
                continue
            entry["codes"].append(code)

        return [
            hydrate(entry["restroom"], entry["location"], entry["codes"])
            for entry in grouped.values()
        ]

    async def get_restroom(self, restroom_id: int) -> Optional[RestroomResponse]:
        restrooms = await self.list_restrooms(restroom_id=restroom_id)
        return restrooms[0] if restrooms else None

    # ── Access Codes ──────────────────────────────────────────────────────

    async def add_access_code(self, restroom_id: int, code: str) -> AccessCode:
        access_code = AccessCode(restroom_id=restroom_id, code=code, likes=0, dislikes=0)
        with self._store_errors("adding access code"):
            try:
                self.session.add(access_code)
                await self.session.flush()
            except IntegrityError as e:
                await self.session.rollback()
                logger.info("Duplicate access code for restroom %s", restroom_id)
                raise ConflictError(
                    message=DUPLICATE_CODE_MESSAGE,
                    context={"restroom_id": restroom_id},
                ) from e
        return access_code

    async def increment_vote(self, code_id: int, field: str) -> bool:
        """
        Atomically add 1 to `likes` or `dislikes`.

        Returns False when no access code has this id.
        """
        column = getattr(AccessCode, field)
        stmt = (
            update(AccessCode)
            .where(AccessCode.id == code_id)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        with self._store_errors("recording vote"):
            result = await self.session.execute(stmt)
            return result.rowcount > 0

    # ── Transactions ──────────────────────────────────────────────────────

    async def commit(self) -> None:
        with self._store_errors("committing"):
            await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


def get_restroom_store(db: AsyncSession = Depends(get_db_session)) -> RestroomStore:
    """FastAPI dependency: one RestroomStore per request session."""
    return RestroomStore(db)
