"""
OpenToilet Backend — Location SQLAlchemy Model
================================================

What:  ORM model for the `locations` table: one physical point on the map.
Who:   Created only by the Location Resolver as a side effect of restroom
       creation; read when hydrating restrooms.

Table notes:
    - A building with separate men's/women's rooms is one Location with
      several Restrooms.
    - idx_locations_lat_lng backs the tolerance (box) search.
    - Deleting a Location cascades to its Restrooms (ON DELETE CASCADE on
      restrooms.location_id).
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Float, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opentoilet.database import Base

if TYPE_CHECKING:
    from opentoilet.models.restroom import Restroom


class Location(Base):
    """A physical point that hosts one or more restrooms."""

    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Display label; defaults to the first restroom's name when not given
    name: Mapped[str] = mapped_column(Text, nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Never set by the resolver; reserved for curated data
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    restrooms: Mapped[List["Restroom"]] = relationship(
        back_populates="location",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("idx_locations_lat_lng", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return (
            f"<Location(id={self.id}, name='{self.name}', "
            f"lat={self.latitude}, lng={self.longitude})>"
        )
