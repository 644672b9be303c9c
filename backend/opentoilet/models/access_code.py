"""
OpenToilet Backend — AccessCode SQLAlchemy Model
==================================================

What:  ORM model for the `access_codes` table: a shared door code for a
       restroom plus community votes on whether it still works.

Constraints:
    - uq_access_codes_restroom_code: one row per (restroom_id, code)
    - likes/dislikes start at 0 and only ever increase by 1 per vote
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opentoilet.database import Base

if TYPE_CHECKING:
    from opentoilet.models.restroom import Restroom


class AccessCode(Base):
    __tablename__ = "access_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    restroom_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("restrooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)

    likes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    dislikes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    restroom: Mapped["Restroom"] = relationship(back_populates="access_codes", lazy="raise")

    __table_args__ = (
        UniqueConstraint("restroom_id", "code", name="uq_access_codes_restroom_code"),
    )

    def __repr__(self) -> str:
        return (
            f"<AccessCode(id={self.id}, restroom_id={self.restroom_id}, "
            f"likes={self.likes}, dislikes={self.dislikes})>"
        )
