"""
app/api/routers package marker.

Bulk import routers must be included before the entity routers so that
GET /bulk is not captured by GET /{entity_id}.
"""

from app.api.routers.bulk_import import asset_bulk_import_router, location_bulk_import_router
from app.api.routers.entities import assets_router, locations_router
from app.api.routers.lookup import router as lookup_router

ROUTERS = (
    asset_bulk_import_router,
    location_bulk_import_router,
    assets_router,
    locations_router,
    lookup_router,
)

__all__ = [
    "ROUTERS",
    "asset_bulk_import_router",
    "assets_router",
    "location_bulk_import_router",
    "locations_router",
    "lookup_router",
]
