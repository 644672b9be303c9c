# Import every model so string relationships resolve and Alembic sees all tables
from opentoilet.models.location import Location
from opentoilet.models.restroom import RESTROOM_TYPES, Restroom
from opentoilet.models.access_code import AccessCode

__all__ = ["Location", "Restroom", "AccessCode", "RESTROOM_TYPES"]
