"""
OpenToilet Backend — Restroom SQLAlchemy Model
================================================

What:  ORM model for the `restrooms` table: one facility at a Location.

Lifecycle:
    1. Created by clients through the Location Resolver
    2. `name` may be edited later; `type` and `location_id` never change
    3. Removed only by cascade when its Location is deleted
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opentoilet.database import Base

if TYPE_CHECKING:
    from opentoilet.models.access_code import AccessCode
    from opentoilet.models.location import Location

# Closed enumeration; mirrored by the ck_restrooms_type constraint
RESTROOM_TYPES = ("male", "female", "neutral")


class Restroom(Base):
    """A single restroom with a gender/accessibility type."""

    __tablename__ = "restrooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    location_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    location: Mapped["Location"] = relationship(back_populates="restrooms", lazy="raise")

    access_codes: Mapped[List["AccessCode"]] = relationship(
        back_populates="restroom",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('male', 'female', 'neutral')",
            name="ck_restrooms_type",
        ),
    )

    def __repr__(self) -> str:
        return f"<Restroom(id={self.id}, type='{self.type}', location_id={self.location_id})>"
