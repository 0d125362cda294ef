"""
Bike taxonomy lookups: onboarding riding styles and interests mapped onto
the marketplace's category / bike_type vocabulary.

Keys are the slugs the onboarding flow stores in ``users.preferences``;
values are the exact strings used in ``products.marketplace_category`` and
``products.bike_type`` (which come from the Lightspeed category sync).
"""

from typing import Dict, NamedTuple, Optional


class StyleMapping(NamedTuple):
    """Category and (optional) bike type a riding style points at."""
    category: str
    bike_type: Optional[str] = None


BICYCLES_CATEGORY = "Bicycles"

# ── Riding style -> category / bike type ──────────────────────────
RIDING_STYLE_MAP: Dict[str, StyleMapping] = {
    "mountain": StyleMapping(BICYCLES_CATEGORY, "Mountain"),
    "road": StyleMapping(BICYCLES_CATEGORY, "Road"),
    "gravel": StyleMapping(BICYCLES_CATEGORY, "Gravel"),
    "track": StyleMapping(BICYCLES_CATEGORY, "Track"),
    "bmx": StyleMapping(BICYCLES_CATEGORY, "BMX"),
    "commuter": StyleMapping(BICYCLES_CATEGORY, "Commuter"),
}

# Unknown styles still point at bikes, but constrain nothing
DEFAULT_STYLE_MAPPING = StyleMapping(BICYCLES_CATEGORY, None)

# ── Interest -> marketplace category ──────────────────────────────
INTEREST_CATEGORY_MAP: Dict[str, str] = {
    "complete-bikes": BICYCLES_CATEGORY,
    "wheels": "Wheels & Tyres",
    "accessories": "Parts",
    "components": "Parts",
    "apparel": "Apparel",
    "nutrition": "Nutrition",
    "frames": "Frames",
    "groupsets": "Drivetrain",
}


def map_riding_style(style: str) -> StyleMapping:
    """Map an onboarding riding style (any case) to category / bike type."""
    if not style:
        return DEFAULT_STYLE_MAPPING
    return RIDING_STYLE_MAP.get(style.strip().lower(), DEFAULT_STYLE_MAPPING)


def map_interest_to_category(interest: str) -> Optional[str]:
    """Map an onboarding interest to a marketplace category, or None if unmapped."""
    if not interest:
        return None
    return INTEREST_CATEGORY_MAP.get(interest.strip().lower())
