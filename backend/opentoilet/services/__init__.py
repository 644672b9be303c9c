"""
OpenToilet Backend — Services Layer
=====================================

Service Inventory:
    - RestroomStore:    data access over one AsyncSession (all SQL lives here)
    - LocationResolver: find-or-create of Locations when a restroom is added
    - RestroomService:  listing, renaming, access codes and votes

Services receive the request's RestroomStore on every call and keep no
per-request state.
"""
