"""Place registry — stable, collision-free identifiers for places.

A new place gets a slug of its name; when the slug is taken the smallest free
numeric suffix is appended. Identifiers never change once assigned, and an
upsert onto an existing id only touches the descriptive fields.
"""

import math
import re
import unicodedata
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.config import get_settings
from luggo.errors import ConflictError, ValidationError
from luggo.logging_config import get_logger
from luggo.models import Place
from luggo.photos import clean_photo

logger = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


@dataclass(frozen=True)
class PlaceFields:
    name: str
    address: str = ""
    latitude: float | None = None
    longitude: float | None = None
    photo: str | None = None


def slugify(text: str | None, max_length: int | None = None, fallback: str | None = None) -> str:
    """Lowercase ASCII slug with single ``-`` separators, bounded in length."""
    settings = get_settings()
    max_length = max_length or settings.place_id_max_length
    fallback = fallback or settings.place_id_fallback

    folded = unicodedata.normalize("NFKD", text or "")
    ascii_text = "".join(ch for ch in folded if not unicodedata.combining(ch)).lower()
    slug = _NON_ALNUM.sub("-", ascii_text).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or fallback


def is_valid_place_id(place_id: str) -> bool:
    return bool(_SLUG_PATTERN.match(place_id)) and len(place_id) <= 120


def next_free_id(base: str, taken: set[str]) -> str:
    """Return ``base`` if free, else ``base-N`` with the smallest unused N >= 1."""
    if base not in taken:
        return base
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


def validate_coords(coords: dict | None, *, required: bool = False) -> tuple[float | None, float | None]:
    """Return ``(lat, lng)``; raises ValidationError on out-of-range values."""
    if coords is None:
        if required:
            raise ValidationError("Select a point on the map", "place_coords_required", field="coords")
        return None, None
    lat, lng = coords.get("lat"), coords.get("lng")
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise ValidationError("Coordinates must be numbers", "invalid_coords", field="coords")
    if not (math.isfinite(lat) and math.isfinite(lng)) or not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError("Coordinates out of range", "invalid_coords", field="coords")
    return lat, lng


def build_place_fields(
    name: str | None,
    address: str | None = None,
    coords: dict | None = None,
    photo: str | None = None,
    *,
    coords_required: bool = False,
) -> PlaceFields:
    """Normalize and validate raw place input."""
    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Place name is required", "place_name_required", field="name")
    lat, lng = validate_coords(coords, required=coords_required)
    return PlaceFields(
        name=clean_name,
        address=(address or "").strip(),
        latitude=lat,
        longitude=lng,
        photo=clean_photo(photo),
    )


async def _taken_ids(db: AsyncSession, base: str) -> set[str]:
    result = await db.execute(
        select(Place.id).where(or_(Place.id == base, Place.id.like(f"{base}-%")))
    )
    return set(result.scalars().all())


async def _insert(db: AsyncSession, place_id: str, fields: PlaceFields) -> Place:
    place = Place(
        id=place_id,
        name=fields.name,
        address=fields.address,
        photo=fields.photo,
        latitude=fields.latitude,
        longitude=fields.longitude,
    )
    try:
        async with db.begin_nested():
            db.add(place)
    except IntegrityError as exc:
        raise ConflictError(f"Place id {place_id} was taken concurrently", "place_id_conflict") from exc
    return place


async def create_place(db: AsyncSession, fields: PlaceFields) -> Place:
    """Create a new logical place under a fresh identifier."""
    settings = get_settings()
    base = slugify(fields.name)
    for attempt in range(1, settings.place_id_max_attempts + 1):
        place_id = next_free_id(base, await _taken_ids(db, base))
        try:
            place = await _insert(db, place_id, fields)
        except ConflictError:
            logger.warning("place_id_collision_retry", place_id=place_id, attempt=attempt)
            continue
        logger.info("place_created", place_id=place_id, name=fields.name)
        return place
    raise ConflictError(f"Could not allocate an id for place {fields.name!r}", "place_id_exhausted")


async def upsert_place(db: AsyncSession, place_id: str, fields: PlaceFields) -> Place:
    """Update descriptive fields of ``place_id``, creating it if missing.

    Name and address are overwritten; photo and coordinates only when a new
    value is supplied.
    """
    if not is_valid_place_id(place_id):
        raise ValidationError(f"Malformed place id {place_id!r}", "invalid_place_id", field="id")

    place = await db.get(Place, place_id)
    if place is None:
        try:
            place = await _insert(db, place_id, fields)
            logger.info("place_created", place_id=place_id, name=fields.name)
            return place
        except ConflictError:
            # Created by a concurrent request in between; fall through to update it.
            place = await db.get(Place, place_id, populate_existing=True)

    place.name = fields.name
    place.address = fields.address
    if fields.photo is not None:
        place.photo = fields.photo
    if fields.latitude is not None and fields.longitude is not None:
        place.latitude = fields.latitude
        place.longitude = fields.longitude
    await db.flush()
    logger.info("place_updated", place_id=place_id)
    return place


async def resolve_or_create(
    db: AsyncSession,
    name: str | None,
    address: str | None = None,
    coords: dict | None = None,
    photo: str | None = None,
    place_id: str | None = None,
    *,
    coords_required: bool = False,
) -> Place:
    """Resolve the place a write refers to.

    With ``place_id`` the caller selected a known place and its metadata is
    upserted; without it a new place is registered under a unique id.
    """
    fields = build_place_fields(name, address, coords, photo, coords_required=coords_required)
    place_id = (place_id or "").strip()
    if place_id:
        return await upsert_place(db, place_id, fields)
    return await create_place(db, fields)


async def list_places(db: AsyncSession) -> list[Place]:
    result = await db.execute(select(Place).order_by(Place.name.asc(), Place.id.asc()))
    return list(result.scalars().all())
