"""
OpenToilet Backend — Location Resolver
========================================

What:  Decides whether a new restroom submission belongs to an existing
       Location or needs a new one, then stores the restroom.
Who:   Called by POST /api/restrooms.

Resolution Flow:
    ┌────────────┐    ┌─────────────────────┐  match   ┌──────────────┐
    │  Validate  │───▶│ Box search ±ε on    │─────────▶│ Reuse its id │──┐
    │  payload   │    │ lat AND lng (min id)│          └──────────────┘  │
    └────────────┘    └─────────────────────┘                            ▼
                              │ no match    ┌─────────────────┐  ┌────────────────┐
                              └────────────▶│ Create Location │─▶│ Insert Restroom│
                                            └─────────────────┘  └────────────────┘

    The search, the optional Location insert and the Restroom insert share
    one transaction and run under the resolver lock until committed, so two
    submissions for the same point in this process cannot both create a
    Location. Separate worker processes are not coordinated.

Validation quirk (kept from the first release of the API):
    Required fields are checked for truthiness, so latitude 0 or longitude 0
    is reported as "Missing required fields".
"""

import asyncio
import logging
from typing import Optional

from opentoilet.config import settings
from opentoilet.exceptions import ValidationError
from opentoilet.models import RESTROOM_TYPES
from opentoilet.schemas.restroom import RestroomCreate, RestroomCreatedResponse
from opentoilet.services.restroom_store import RestroomStore, hydrate

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields"
INVALID_TYPE_MESSAGE = 'Type must be "male", "female" or "neutral"'


class LocationResolver:
    """
    Find-or-create of Locations for new restrooms.

    Args:
        tolerance: Match threshold in degrees per axis. Defaults to
                   settings.location_match_tolerance (0.0001).
    """

    def __init__(self, tolerance: Optional[float] = None):
        self.tolerance = (
            tolerance if tolerance is not None else settings.location_match_tolerance
        )
        self._lock = asyncio.Lock()

    @staticmethod
    def validate(payload: RestroomCreate) -> None:
        if not payload.name or not payload.latitude or not payload.longitude or not payload.type:
            raise ValidationError(
                message=MISSING_FIELDS_MESSAGE,
                context={
                    "name": bool(payload.name),
                    "latitude": payload.latitude,
                    "longitude": payload.longitude,
                    "type": payload.type,
                },
            )
        if payload.type not in RESTROOM_TYPES:
            raise ValidationError(message=INVALID_TYPE_MESSAGE, field="type")

    @staticmethod
    def _new_location_name(payload: RestroomCreate) -> str:
        if payload.location_name and payload.location_name.strip():
            return payload.location_name
        return payload.name

    async def resolve_and_create_restroom(
        self, store: RestroomStore, payload: RestroomCreate
    ) -> RestroomCreatedResponse:
        """
        Validate, resolve the Location, insert the Restroom and commit.

        Returns:
            The hydrated restroom with its Location and an empty code list.

        Raises:
            ValidationError: Missing/falsy required field or unknown type (→ 400)
            InternalError:   Store failure; nothing from this call is kept (→ 500)
        """
        self.validate(payload)

        async with self._lock:
            try:
                location = await store.find_location_near(
                    payload.latitude, payload.longitude, self.tolerance
                )
                if location is not None:
                    logger.info(
                        "Reusing location %s for restroom '%s' at (%s, %s)",
                        location.id, payload.name, payload.latitude, payload.longitude,
                    )
                else:
                    location = await store.create_location(
                        name=self._new_location_name(payload),
                        latitude=payload.latitude,
                        longitude=payload.longitude,
                    )
                    logger.info(
                        "Created location %s at (%s, %s)",
                        location.id, location.latitude, location.longitude,
                    )

                restroom = await store.create_restroom(
                    location_id=location.id,
                    name=payload.name,
                    type=payload.type,
                )
                created = RestroomCreatedResponse(**hydrate(restroom, location).model_dump())
                await store.commit()
            except Exception:
                await store.rollback()
                raise

        logger.info("Restroom %s added to location %s", created.id, created.location_id)
        return created


# ── Singleton Instance ────────────────────────────────────────────────────
# Shared so every request goes through the same lock
location_resolver = LocationResolver()
