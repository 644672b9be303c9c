"""
OpenToilet Backend — Schema Migration Tests
=============================================

What:  Tests for the Alembic history run by run_migrations() at startup.
How:   A database in the flat first-release layout is seeded with raw SQL,
       then migrated to head and read back through the store.

What we test:
    ✅ A fresh database ends with locations, restrooms(location_id), access_codes
    ✅ Restroom ids, created_at and access codes survive normalization
    ✅ Restrooms at identical coordinates are grouped into one Location
    ✅ The Location is named after the earliest restroom at that point
    ✅ Running migrations again is a no-op
    ✅ Foreign keys are enforced again after migrating
"""

from datetime import datetime

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opentoilet.database import run_migrations
from opentoilet.exceptions import InternalError
from opentoilet.services.restroom_store import RestroomStore


async def table_columns(engine, table):
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns(table)}
        )


async def seed_legacy(engine):
    async with engine.begin() as conn:
        await conn.execute(text(
            "INSERT INTO restrooms (id, name, latitude, longitude, type, created_at) VALUES "
            "(1, 'Cafe Women', 40.7128, -74.006, 'female', '2024-01-01 09:00:00'),"
            "(2, 'Cafe Men', 40.7128, -74.006, 'male', '2024-01-02 09:00:00'),"
            "(3, 'Library', 40.8, -73.95, 'neutral', '2024-02-01 12:30:00'),"
            "(7, 'Cafe Family', 40.7128, -74.006, 'neutral', '2023-12-31 08:00:00')"
        ))
        await conn.execute(text(
            "INSERT INTO access_codes (id, restroom_id, code, likes, dislikes) VALUES "
            "(10, 1, '1234', 3, 1),"
            "(11, 1, '9999', 0, 0),"
            "(12, 3, 'ask desk', 5, 0)"
        ))


class TestFreshDatabase:

    @pytest.mark.asyncio
    async def test_schema_at_head(self, db_engine):
        assert "location_id" in await table_columns(db_engine, "restrooms")
        assert "latitude" not in await table_columns(db_engine, "restrooms")
        assert {"id", "name", "latitude", "longitude", "address", "created_at"} <= (
            await table_columns(db_engine, "locations")
        )

        async with db_engine.connect() as conn:
            version = (await conn.execute(text("SELECT version_num FROM alembic_version"))).scalar()
        assert version == "002"

    @pytest.mark.asyncio
    async def test_rerun_is_noop(self, db_engine):
        await run_migrations(db_engine)

        assert "location_id" in await table_columns(db_engine, "restrooms")

    @pytest.mark.asyncio
    async def test_foreign_keys_enforced_after_migration(self, session_factory):
        async with session_factory() as session:
            store = RestroomStore(session)
            with pytest.raises(InternalError):
                await store.create_restroom(location_id=12345, name="Orphan", type="male")


class TestLegacyNormalization:

    @pytest.mark.asyncio
    async def test_flat_rows_become_locations(self, legacy_engine, count_locations):
        await seed_legacy(legacy_engine)

        await run_migrations(legacy_engine)

        factory = async_sessionmaker(legacy_engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            store = RestroomStore(session)
            restrooms = {r.id: r for r in await store.list_restrooms()}
            assert await count_locations(session) == 2

        assert set(restrooms) == {1, 2, 3, 7}

        cafe_location = {restrooms[i].location_id for i in (1, 2, 7)}
        assert len(cafe_location) == 1
        assert restrooms[3].location_id not in cafe_location

        # Earliest restroom at the point names the Location
        assert restrooms[1].location.name == "Cafe Family"
        assert restrooms[3].location.name == "Library"
        assert restrooms[3].location.latitude == 40.8
        assert restrooms[3].location.address is None

        assert restrooms[2].created_at == datetime(2024, 1, 2, 9, 0, 0)
        assert restrooms[2].type == "male"

    @pytest.mark.asyncio
    async def test_access_codes_survive(self, legacy_engine):
        await seed_legacy(legacy_engine)

        await run_migrations(legacy_engine)

        factory = async_sessionmaker(legacy_engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            restroom = await RestroomStore(session).get_restroom(1)

        assert [(c.id, c.code, c.likes, c.dislikes) for c in restroom.access_codes] == [
            (10, "1234", 3, 1),
            (11, "9999", 0, 0),
        ]

    @pytest.mark.asyncio
    async def test_access_codes_still_reference_restrooms(self, legacy_engine):
        await seed_legacy(legacy_engine)
        await run_migrations(legacy_engine)

        async with legacy_engine.connect() as conn:
            fks = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_foreign_keys("access_codes")
            )
            assert [fk["referred_table"] for fk in fks] == ["restrooms"]

            with pytest.raises(IntegrityError):
                await conn.execute(text(
                    "INSERT INTO access_codes (restroom_id, code) VALUES (404, 'nope')"
                ))
            await conn.rollback()

    @pytest.mark.asyncio
    async def test_new_restrooms_continue_after_legacy_ids(self, legacy_engine):
        await seed_legacy(legacy_engine)
        await run_migrations(legacy_engine)

        factory = async_sessionmaker(legacy_engine, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            store = RestroomStore(session)
            location = await store.create_location("Park", 41.0, -73.0)
            restroom = await store.create_restroom(location.id, "Park", "neutral")
            await store.commit()

        assert restroom.id > 7

    @pytest.mark.asyncio
    async def test_empty_legacy_database(self, legacy_engine):
        await run_migrations(legacy_engine)

        assert "location_id" in await table_columns(legacy_engine, "restrooms")
