"""Baseline: flat restrooms and access_codes tables

Revision ID: 001
Revises: None
Create Date: 2025-06-01 00:00:00.000000+00:00

What:  The schema the first version of the service created on its own at
       startup: restrooms carry their own latitude/longitude, access codes
       hang off restrooms.
How:   Tables are only created when missing, so a database written by the
       earlier service is adopted as-is and then normalized by 002.

Rollback: downgrade() drops both tables (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    existing = set(sa.inspect(op.get_bind()).get_table_names())

    if "restrooms" not in existing:
        op.create_table(
            "restrooms",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.Text(), nullable=False),
            sa.Column("latitude", sa.Float(), nullable=False),
            sa.Column("longitude", sa.Float(), nullable=False),
            sa.Column("type", sa.String(20), nullable=False),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("CURRENT_TIMESTAMP"),
            ),
            sa.CheckConstraint(
                "type IN ('male', 'female', 'neutral')", name="ck_restrooms_type"
            ),
        )

    if "access_codes" not in existing:
        op.create_table(
            "access_codes",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "restroom_id",
                sa.Integer(),
                sa.ForeignKey("restrooms.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("code", sa.Text(), nullable=False),
            sa.Column("likes", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("dislikes", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.text("CURRENT_TIMESTAMP"),
            ),
            sa.UniqueConstraint("restroom_id", "code", name="uq_access_codes_restroom_code"),
        )
        op.create_index("ix_access_codes_restroom_id", "access_codes", ["restroom_id"])


def downgrade() -> None:
    op.drop_table("access_codes")
    op.drop_table("restrooms")
