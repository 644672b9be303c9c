"""
OpenToilet Backend — Pydantic Request/Response Schemas
========================================================

What:  Pydantic models defining the JSON contract with the map client.
How:   Request models are deliberately lenient (every field optional) so the
       services can apply the API's own required-field rules and messages;
       response models define the hydrated restroom shape.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class RestroomCreate(BaseModel):
    """
    Body of POST /api/restrooms.

    `locationName` labels a newly created Location; it is ignored when the
    submission matches an existing one.
    """
    name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    type: Optional[str] = None
    location_name: Optional[str] = Field(default=None, alias="locationName")

    model_config = ConfigDict(populate_by_name=True)


class RestroomRename(BaseModel):
    """Body of PUT /api/restrooms/{id}."""
    name: Optional[str] = None


class AccessCodeCreate(BaseModel):
    """Body of POST /api/restrooms/{id}/codes. Numeric codes are accepted as strings."""
    code: Optional[str] = None

    model_config = ConfigDict(coerce_numbers_to_str=True)


class VoteCreate(BaseModel):
    """Body of POST /api/restrooms/codes/{id}/vote: type is "like" or "dislike"."""
    type: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns
# ══════════════════════════════════════════════════════════════════════════


class LocationResponse(BaseModel):
    id: int
    name: str
    latitude: float
    longitude: float
    address: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AccessCodeResponse(BaseModel):
    id: int
    code: str
    likes: int
    dislikes: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RestroomResponse(BaseModel):
    """
    A hydrated restroom: its own fields, its Location, and all access codes.

    Top-level latitude/longitude repeat the Location's coordinates for map
    clients that place markers straight from the restroom list.
    """
    id: int
    location_id: int
    name: str
    type: str
    latitude: float
    longitude: float
    created_at: datetime
    location: LocationResponse
    access_codes: List[AccessCodeResponse] = Field(default_factory=list)


class RestroomCreatedResponse(RestroomResponse):
    """Returned by POST /api/restrooms."""
    message: str = "Restroom added successfully"


class AccessCodeCreatedResponse(BaseModel):
    """Returned by POST /api/restrooms/{id}/codes."""
    id: int
    restroom_id: int
    code: str
    likes: int = 0
    dislikes: int = 0
    message: str = "Access code added successfully"


class MessageResponse(BaseModel):
    message: str


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """Every error body: `{"error": "<message>"}`."""
    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    status: str = Field(default="OK")
    message: str = Field(default="Backend is running")
