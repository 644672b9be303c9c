"""
OpenToilet Backend — Application Package
==========================================

Crowdsourced restroom map API: restrooms grouped by physical location,
shared access codes, and community votes on those codes.

Layers:
    ┌─────────────────────────────────────┐
    │         Routes (API Layer)          │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (Resolver, restroom rules)│  ← validation, find-or-create
    ├─────────────────────────────────────┤
    │     RestroomStore (data access)     │  ← all SQL, error translation
    ├─────────────────────────────────────┤
    │  Models (SQLAlchemy) / Schemas      │  ← tables / JSON contract
    ├─────────────────────────────────────┤
    │  Database + Alembic migrations      │  ← sessions, startup barrier
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
