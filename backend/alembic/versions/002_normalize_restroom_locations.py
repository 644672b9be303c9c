"""Normalize restrooms into locations + restrooms

Revision ID: 002
Revises: 001
Create Date: 2025-07-01 00:00:00.000000+00:00

What:  Moves coordinates off `restrooms` into a new `locations` table so
       several restrooms (men's / women's / family room) can share one map
       point.

Steps (only when restrooms still has latitude/longitude and no location_id):
    1. Rename restrooms → restrooms_legacy, leaving the access_codes foreign
       key pointing at the name "restrooms"
    2. Create locations and the new restrooms table
    3. One location per distinct exact (latitude, longitude); named after
       the earliest-created restroom at that point
    4. Copy every restroom with its original id and created_at, linked by
       exact coordinates (no tolerance here)
    5. Drop restrooms_legacy

Access codes are not touched: restroom ids survive the copy.

Must run before the API serves traffic and never concurrently with writes.
On SQLite the caller disables foreign keys for the run (see
opentoilet.database.run_migrations); the CLI engine never enables them.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEGACY_TABLE = "restrooms_legacy"


def _column_names(inspector, table: str) -> set:
    return {column["name"] for column in inspector.get_columns(table)}


def is_flat_schema(inspector) -> bool:
    """True when restrooms still stores coordinates itself."""
    if "restrooms" not in inspector.get_table_names():
        return False
    columns = _column_names(inspector, "restrooms")
    return {"latitude", "longitude"} <= columns and "location_id" not in columns


def _create_locations_table() -> None:
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("idx_locations_lat_lng", "locations", ["latitude", "longitude"])


def _create_restrooms_table() -> None:
    op.create_table(
        "restrooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "location_id",
            sa.Integer(),
            sa.ForeignKey("locations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.CheckConstraint(
            "type IN ('male', 'female', 'neutral')", name="ck_restrooms_type"
        ),
    )
    op.create_index("ix_restrooms_location_id", "restrooms", ["location_id"])


def _detach_access_codes(bind, inspector) -> None:
    """
    Keep access_codes referring to the name "restrooms" across the rename.

    SQLite rewrites foreign keys on RENAME unless legacy_alter_table is on.
    PostgreSQL binds foreign keys to the table itself, so the constraint is
    dropped here and re-created against the new table afterwards; the legacy
    primary key is renamed to free the name restrooms_pkey.
    """
    if bind.dialect.name == "sqlite":
        op.execute("PRAGMA legacy_alter_table=ON")
        return

    for fk in inspector.get_foreign_keys("access_codes"):
        if fk["referred_table"] == "restrooms" and fk.get("name"):
            op.drop_constraint(fk["name"], "access_codes", type_="foreignkey")

    pk_name = inspector.get_pk_constraint("restrooms").get("name")
    if pk_name:
        op.execute(
            f'ALTER TABLE restrooms RENAME CONSTRAINT "{pk_name}" TO "{LEGACY_TABLE}_pkey"'
        )


def _reattach_access_codes(bind) -> None:
    if bind.dialect.name == "sqlite":
        op.execute("PRAGMA legacy_alter_table=OFF")
        return

    op.create_foreign_key(
        "access_codes_restroom_id_fkey",
        "access_codes",
        "restrooms",
        ["restroom_id"],
        ["id"],
        ondelete="CASCADE",
    )
    # Explicit ids were copied; move the serial past them
    op.execute(
        "SELECT setval(pg_get_serial_sequence('restrooms', 'id'), "
        "COALESCE((SELECT MAX(id) FROM restrooms), 0) + 1, false)"
    )


def _ensure_access_code_index(inspector) -> None:
    names = {index["name"] for index in inspector.get_indexes("access_codes")}
    if "ix_access_codes_restroom_id" not in names:
        op.create_index("ix_access_codes_restroom_id", "access_codes", ["restroom_id"])


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not is_flat_schema(inspector):
        # Already normalized by a later release of the service
        return

    _detach_access_codes(bind, inspector)

    # 1. Preserve the old table under a new name
    op.rename_table("restrooms", LEGACY_TABLE)

    # 2. New tables
    _create_locations_table()
    _create_restrooms_table()

    # 3. One location per distinct exact coordinate pair
    op.execute(
        f"""
        INSERT INTO locations (name, latitude, longitude, address, created_at)
        SELECT
            (SELECT earliest.name FROM {LEGACY_TABLE} earliest
              WHERE earliest.latitude = r.latitude AND earliest.longitude = r.longitude
              ORDER BY earliest.created_at, earliest.id
              LIMIT 1),
            r.latitude,
            r.longitude,
            NULL,
            COALESCE(MIN(r.created_at), CURRENT_TIMESTAMP)
        FROM {LEGACY_TABLE} r
        GROUP BY r.latitude, r.longitude
        ORDER BY MIN(r.created_at), MIN(r.id)
        """
    )

    # 4. Restrooms keep id and created_at
    op.execute(
        f"""
        INSERT INTO restrooms (id, location_id, name, type, created_at)
        SELECT r.id, l.id, r.name, r.type, COALESCE(r.created_at, CURRENT_TIMESTAMP)
        FROM {LEGACY_TABLE} r
        JOIN locations l ON l.latitude = r.latitude AND l.longitude = r.longitude
        ORDER BY r.id
        """
    )

    # 5. Drop the old table
    op.drop_table(LEGACY_TABLE)

    _reattach_access_codes(bind)
    _ensure_access_code_index(sa.inspect(bind))


def downgrade() -> None:
    """Fold location coordinates back into a flat restrooms table."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    _detach_access_codes(bind, inspector)
    op.rename_table("restrooms", LEGACY_TABLE)

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
    op.execute(
        f"""
        INSERT INTO restrooms (id, name, latitude, longitude, type, created_at)
        SELECT r.id, r.name, l.latitude, l.longitude, r.type, r.created_at
        FROM {LEGACY_TABLE} r
        JOIN locations l ON l.id = r.location_id
        ORDER BY r.id
        """
    )

    op.drop_index("ix_restrooms_location_id", table_name=LEGACY_TABLE)
    op.drop_table(LEGACY_TABLE)
    op.drop_index("idx_locations_lat_lng", table_name="locations")
    op.drop_table("locations")

    _reattach_access_codes(bind)
