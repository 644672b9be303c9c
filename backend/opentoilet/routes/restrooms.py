"""
OpenToilet Backend — Restroom Route Handlers
==============================================

What:  The restroom/access-code REST surface used by the map client.
How:   Parse the body, hand the request's RestroomStore to a service, return
       its model. A missing or null body reads as {} so the services report
       their own required-field messages. Errors are raised as OpenToiletError
       subclasses and turned into `{"error": ...}` responses by the handlers
       in main.py.

Route Inventory:
    GET  /api/restrooms                    list hydrated restrooms
    POST /api/restrooms                    create (Location Resolver)
    POST /api/restrooms/{id}/codes         add an access code
    PUT  /api/restrooms/{id}               rename
    POST /api/restrooms/codes/{id}/vote    like / dislike a code
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends

from opentoilet.schemas.restroom import (
    AccessCodeCreate,
    AccessCodeCreatedResponse,
    ErrorResponse,
    MessageResponse,
    RestroomCreate,
    RestroomCreatedResponse,
    RestroomRename,
    RestroomResponse,
    VoteCreate,
)
from opentoilet.services.location_resolver import location_resolver
from opentoilet.services.restroom_service import restroom_service
from opentoilet.services.restroom_store import RestroomStore, get_restroom_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/restrooms", tags=["Restrooms"])


@router.get(
    "",
    response_model=List[RestroomResponse],
    responses={500: {"model": ErrorResponse}},
    summary="List restrooms with their locations and access codes",
)
async def list_restrooms(
    store: RestroomStore = Depends(get_restroom_store),
) -> List[RestroomResponse]:
    return await restroom_service.list_restrooms(store)


@router.post(
    "",
    response_model=RestroomCreatedResponse,
    responses={
        400: {"description": "Missing required fields or invalid type", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Add a restroom",
    description=(
        "Creates a restroom. If an existing location lies within the match tolerance "
        "on both latitude and longitude, the restroom joins it; otherwise a new "
        "location is created from `locationName` (or the restroom name)."
    ),
)
async def create_restroom(
    payload: Optional[RestroomCreate] = Body(default=None),
    store: RestroomStore = Depends(get_restroom_store),
) -> RestroomCreatedResponse:
    return await location_resolver.resolve_and_create_restroom(
        store, payload or RestroomCreate()
    )


@router.post(
    "/codes/{code_id}/vote",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid vote type", "model": ErrorResponse},
        404: {"description": "Access code not found", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Like or dislike an access code",
)
async def vote_on_code(
    code_id: int,
    payload: Optional[VoteCreate] = Body(default=None),
    store: RestroomStore = Depends(get_restroom_store),
) -> MessageResponse:
    return await restroom_service.vote(store, code_id, (payload or VoteCreate()).type)


@router.post(
    "/{restroom_id}/codes",
    response_model=AccessCodeCreatedResponse,
    responses={
        400: {"description": "Missing or duplicate code", "model": ErrorResponse},
        404: {"description": "Restroom not found", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Add an access code to a restroom",
)
async def add_access_code(
    restroom_id: int,
    payload: Optional[AccessCodeCreate] = Body(default=None),
    store: RestroomStore = Depends(get_restroom_store),
) -> AccessCodeCreatedResponse:
    return await restroom_service.add_access_code(
        store, restroom_id, (payload or AccessCodeCreate()).code
    )


@router.put(
    "/{restroom_id}",
    response_model=RestroomResponse,
    responses={
        400: {"description": "Name is required", "model": ErrorResponse},
        404: {"description": "Restroom not found", "model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Rename a restroom",
)
async def rename_restroom(
    restroom_id: int,
    payload: Optional[RestroomRename] = Body(default=None),
    store: RestroomStore = Depends(get_restroom_store),
) -> RestroomResponse:
    return await restroom_service.rename_restroom(
        store, restroom_id, (payload or RestroomRename()).name
    )
