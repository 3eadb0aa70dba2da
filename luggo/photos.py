"""Photo resolution: explicit review photo, then the place's photo, then a placeholder.

The placeholder is a deterministic SVG data URL rendered from the place name.
It is only produced for display and is never stored in place of a missing photo.
"""

from html import escape
from urllib.parse import quote

PLACEHOLDER_FALLBACK_NAME = "Lugar"

_PLACEHOLDER_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 640 360">'
    '<rect fill="#1f2937" width="640" height="360"/>'
    '<text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" '
    'font-family="Segoe UI, Roboto, sans-serif" font-size="36" fill="#e5e7eb">{label}</text>'
    "</svg>"
)


def clean_photo(value: object) -> str | None:
    """Trim a photo reference; empty and non-string values mean "no photo"."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def placeholder_photo(name: str | None) -> str:
    label = escape((name or "").strip() or PLACEHOLDER_FALLBACK_NAME, quote=True)
    return "data:image/svg+xml," + quote(_PLACEHOLDER_SVG.format(label=label), safe="")


def resolve_photo(
    review_photo: str | None,
    place_photo: str | None,
    place_name: str | None = None,
    *,
    placeholder: bool = False,
) -> str | None:
    """Pick the first available photo in priority order.

    With ``placeholder=False`` (storage and API payloads) a missing photo stays
    ``None``; with ``placeholder=True`` (rendering) it becomes the generated image.
    """
    for candidate in (review_photo, place_photo):
        photo = clean_photo(candidate)
        if photo is not None:
            return photo
    if placeholder:
        return placeholder_photo(place_name)
    return None
