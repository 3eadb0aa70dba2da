"""Place endpoints — list, nearby search, create/upsert."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.auth import get_current_user
from luggo.config import get_settings
from luggo.database import get_db
from luggo.logging_config import get_logger
from luggo.models import User
from luggo.schemas import PlaceEnvelope, PlaceIn, PlaceListResponse, place_response
from luggo.services import geo, place_registry

logger = get_logger(__name__)
router = APIRouter(prefix="/places", tags=["places"])


@router.get("", response_model=PlaceListResponse)
async def list_places(db: AsyncSession = Depends(get_db)):
    """All places ordered by name."""
    places = await place_registry.list_places(db)
    return PlaceListResponse(places=[place_response(place) for place in places])


@router.get("/nearby")
async def nearby_places(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float | None = Query(None, gt=0),
    limit: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Places around a point as a GeoJSON FeatureCollection, closest first."""
    settings = get_settings()
    places = await place_registry.list_places(db)
    return geo.nearby_features(
        places,
        lat,
        lng,
        radius or settings.nearby_default_radius_m,
        geo.clamp_limit(limit, settings.nearby_default_limit, settings.nearby_max_limit),
    )


@router.post("", response_model=PlaceEnvelope, status_code=201)
async def create_place(
    body: PlaceIn,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Register a place, or upsert the metadata of ``body.id`` when given."""
    place = await place_registry.resolve_or_create(
        db,
        name=body.name,
        address=body.address,
        coords=body.coords.model_dump() if body.coords else None,
        photo=body.photo,
        place_id=body.id,
        coords_required=True,
    )
    await db.commit()
    logger.info("place_saved", place_id=place.id, uid=user.uid)
    return PlaceEnvelope(place=place_response(place))
