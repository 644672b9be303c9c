"""
OpenToilet Backend — Restroom Service
=======================================

What:  Business rules for reading restrooms, renaming them, adding access
       codes and recording votes. Restroom creation lives in the
       LocationResolver.
How:   Stateless; every call receives the request's RestroomStore.

Rules:
    list_restrooms   → hydrated restrooms, newest Location first
    rename_restroom  → name must be non-blank; stored trimmed
    add_access_code  → code required; restroom must exist; unique per restroom
    vote             → "like" | "dislike"; +1 on the matching counter
"""

import logging
from typing import List, Optional

from opentoilet.exceptions import NotFoundError, ValidationError
from opentoilet.schemas.restroom import (
    AccessCodeCreatedResponse,
    MessageResponse,
    RestroomResponse,
)
from opentoilet.services.restroom_store import RestroomStore

logger = logging.getLogger(__name__)

VOTE_FIELDS = {"like": "likes", "dislike": "dislikes"}


class RestroomService:

    async def list_restrooms(self, store: RestroomStore) -> List[RestroomResponse]:
        restrooms = await store.list_restrooms()
        logger.debug("Listing %d restrooms", len(restrooms))
        return restrooms

    async def rename_restroom(
        self, store: RestroomStore, restroom_id: int, name: Optional[str]
    ) -> RestroomResponse:
        """
        Update a restroom's name and return the full hydrated record.

        Raises:
            ValidationError: name missing, empty or whitespace only (→ 400)
            NotFoundError:   no restroom with this id (→ 404)
        """
        if not name or not name.strip():
            raise ValidationError(message="Name is required", field="name")

        if not await store.rename_restroom(restroom_id, name.strip()):
            raise NotFoundError(resource="Restroom", resource_id=restroom_id)

        restroom = await store.get_restroom(restroom_id)
        if restroom is None:
            raise NotFoundError(resource="Restroom", resource_id=restroom_id)

        logger.info("Restroom %s renamed", restroom_id)
        return restroom

    async def add_access_code(
        self, store: RestroomStore, restroom_id: int, code: Optional[str]
    ) -> AccessCodeCreatedResponse:
        """
        Record a new access code with zero votes.

        Raises:
            ValidationError: code missing or empty (→ 400)
            NotFoundError:   restroom does not exist (→ 404)
            ConflictError:   same code already recorded for this restroom (→ 400)
        """
        if not code:
            raise ValidationError(message="Code is required", field="code")

        if not await store.restroom_exists(restroom_id):
            raise NotFoundError(resource="Restroom", resource_id=restroom_id)

        access_code = await store.add_access_code(restroom_id, code)
        logger.info("Access code %s added to restroom %s", access_code.id, restroom_id)

        return AccessCodeCreatedResponse(
            id=access_code.id,
            restroom_id=restroom_id,
            code=access_code.code,
            likes=0,
            dislikes=0,
        )

    async def vote(
        self, store: RestroomStore, code_id: int, vote_type: Optional[str]
    ) -> MessageResponse:
        """
        Add one like or dislike to an access code.

        Raises:
            ValidationError: vote type is not "like" or "dislike" (→ 400)
            NotFoundError:   no access code with this id (→ 404)
        """
        field = VOTE_FIELDS.get(vote_type or "")
        if field is None:
            raise ValidationError(
                message='Vote type must be "like" or "dislike"', field="type"
            )

        if not await store.increment_vote(code_id, field):
            raise NotFoundError(resource="Access code", resource_id=code_id)

        return MessageResponse(message=f"{vote_type} recorded successfully")


# ── Singleton Instance ────────────────────────────────────────────────────
restroom_service = RestroomService()
