"""Sentinel Backend — Administrative boundary hierarchy.

Loads the region (viloyat) boundary file plus one district file per region,
normalizes their geometries for the map layer and answers drill-down lookups:

  - region_index()        → every region and district feature, merged
  - districts_for(name)   → the district layer of one region (exact name)
  - region_label(props)   → display label for a feature's properties

Boundary files are plain GeoJSON, parsed strictly (json + pydantic schema).
Older exports wrapped in ``const regions = {...};`` are converted once with
scripts/repair_boundaries.py; nothing here evaluates file contents as code.
"""

import copy
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from pydantic import ValidationError

from config import BOUNDARIES_DIR
from models import RawFeatureCollection

logger = logging.getLogger("sentinel.geo")

POLYGONAL_TYPES = ("Polygon", "MultiPolygon")

# Property keys tried, in order, when labelling a region feature
LABEL_KEYS = ("name", "ADM1_UZ", "ADM1_EN", "ADM1_RU")
UNKNOWN_LABEL = "Unknown"

# Merged into the region index in this order
REGION_SOURCE_FILES = (
    "regions.json",
    "andijon.json",
    "buxoro.json",
    "fargona.json",
    "jizzax.json",
    "namangan.json",
    "navoiy.json",
    "qashqadaryo.json",
    "qoraqalpogiston.json",
    "samarqand.json",
    "sirdaryo.json",
    "surxondaryo.json",
    "toshkent.json",
    "xorazm.json",
)

# Region display name → file holding its district boundaries
REGION_DISTRICT_SOURCES = MappingProxyType({
    "Toshkent sh.": "toshkent_shahri.json",
    "Toshkent viloyati": "toshkent.json",
    "Andijon viloyati": "andijon.json",
    "Buxoro viloyati": "buxoro.json",
    "Farg'ona viloyati": "fargona.json",
    "Jizzax viloyati": "jizzax.json",
    "Namangan viloyati": "namangan.json",
    "Navoiy viloyati": "navoiy.json",
    "Qashqadaryo viloyati": "qashqadaryo.json",
    "Qoraqalpogʻiston Respublikasi": "qoraqalpogiston.json",
    "Samarqand viloyati": "samarqand.json",
    "Sirdaryo viloyati": "sirdaryo.json",
    "Surxondaryo viloyati": "surxondaryo.json",
    "Xorazm viloyati": "xorazm.json",
})


class BoundaryDataError(Exception):
    """A boundary file is not a valid GeoJSON FeatureCollection."""


def empty_collection() -> dict:
    return {"type": "FeatureCollection", "features": []}


# ─────────────────────────── Parsing ────────────────────────────

def parse_feature_collection(text: str | bytes) -> dict:
    """Parse a GeoJSON FeatureCollection from strict JSON text.

    Raises BoundaryDataError for anything that is not valid JSON or does not
    match the FeatureCollection schema (unquoted keys, trailing commas and
    JavaScript wrappers are all rejected). Features with no ``properties``
    get an empty dict.
    """
    try:
        fc = RawFeatureCollection.model_validate_json(text)
    except ValidationError as e:
        raise BoundaryDataError(str(e)) from e

    data = fc.model_dump()
    for feature in data["features"]:
        if not feature.get("properties"):
            feature["properties"] = {}
    return data


def load_feature_collection(path: Path) -> dict:
    """Read one boundary file; missing or malformed files yield an empty collection."""
    try:
        data = parse_feature_collection(Path(path).read_bytes())
    except FileNotFoundError:
        logger.warning(f"Boundary file not found: {path}")
        return empty_collection()
    except BoundaryDataError as e:
        logger.warning(f"Invalid boundary file {Path(path).name}: {e}")
        return empty_collection()
    logger.info(f"Loaded {len(data['features'])} boundary features from {Path(path).name}")
    return data


# ─────────────────────────── Normalization ──────────────────────

def normalize_geometry(geometry: dict | None) -> dict | None:
    """Collapse a GeometryCollection into a Polygon or MultiPolygon.

    Non-polygonal members are discarded. One member is returned as-is,
    several are merged into a MultiPolygon (a Polygon contributes its ring
    set, a MultiPolygon each of its ring sets, in member order). Returns
    None when nothing polygonal remains. Other geometry types pass through.
    """
    if not geometry:
        return geometry
    if geometry.get("type") != "GeometryCollection":
        return geometry
    members = geometry.get("geometries")
    if not isinstance(members, list):
        return geometry

    polys = [g for g in members if isinstance(g, dict) and g.get("type") in POLYGONAL_TYPES]
    if not polys:
        return None
    if len(polys) == 1:
        return polys[0]

    coordinates = []
    for g in polys:
        if g["type"] == "Polygon":
            coordinates.append(g.get("coordinates", []))
        else:
            coordinates.extend(g.get("coordinates", []))
    return {"type": "MultiPolygon", "coordinates": coordinates}


def normalize_regions(fc: dict | None) -> dict:
    features = []
    for feature in (fc or {}).get("features") or []:
        geometry = normalize_geometry(feature.get("geometry"))
        if not geometry:
            continue
        features.append({**feature, "geometry": geometry})
    return {"type": "FeatureCollection", "features": features}


def build_region_index(sources: list[dict]) -> dict:
    """Concatenate the features of every source (in order) and normalize them."""
    merged = []
    for source in sources:
        merged.extend((source or {}).get("features") or [])
    result = normalize_regions({"type": "FeatureCollection", "features": merged})
    dropped = len(merged) - len(result["features"])
    if dropped:
        logger.info(f"Dropped {dropped} boundary features without polygon geometry")
    return result


def region_label(properties: dict | None) -> str:
    if not properties:
        return UNKNOWN_LABEL
    for key in LABEL_KEYS:
        value = properties.get(key)
        if value:
            return str(value)
    return UNKNOWN_LABEL


# ─────────────────────────── Snapshots ──────────────────────────

@lru_cache(maxsize=1)
def _region_index() -> dict:
    sources = [load_feature_collection(BOUNDARIES_DIR / name) for name in REGION_SOURCE_FILES]
    index = build_region_index(sources)
    logger.info(f"Region index built: {len(index['features'])} features from {len(sources)} files")
    return index


@lru_cache(maxsize=None)
def _district_layer(filename: str) -> dict:
    return normalize_regions(load_feature_collection(BOUNDARIES_DIR / filename))


def region_index() -> dict:
    """All region and district boundaries as one FeatureCollection (a copy)."""
    return copy.deepcopy(_region_index())


def districts_for(region_name: str) -> dict:
    """District boundaries of one region, looked up by exact display name.

    Unknown names and regions whose district file is missing give an empty
    collection.
    """
    filename = REGION_DISTRICT_SOURCES.get(region_name)
    if filename is None:
        return empty_collection()
    return copy.deepcopy(_district_layer(filename))


def region_names() -> list[str]:
    return [region_label(f.get("properties")) for f in _region_index()["features"]]


# ─────────────────────────── Static layers ──────────────────────

# Simplified national outline, including two Fergana valley exclaves
UZBEKISTAN_BORDER = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"name": "Uzbekistan"},
            "geometry": {
                "type": "MultiPolygon",
                "coordinates": [
                    [[
                        [56.0, 45.0], [73.0, 45.0], [73.0, 37.0], [56.0, 37.0], [56.0, 45.0],
                    ]],
                    # Sokh
                    [[
                        [71.800885, 40.003191], [71.78075, 40.02075], [71.777815, 40.021125],
                        [71.776313, 40.019487], [71.810816, 40.003772], [71.800885, 40.003191],
                    ]],
                    # Shohimardan
                    [[
                        [71.007037, 40.182499], [70.99962, 40.184521], [71.041789, 40.181824],
                        [71.02095, 40.178147], [71.007037, 40.182499],
                    ]],
                ],
            },
        }
    ],
}


def _box(west: float, south: float, east: float, north: float) -> dict:
    return {
        "type": "Polygon",
        "coordinates": [[
            [west, north], [east, north], [east, south], [west, south], [west, north],
        ]],
    }


def generate_mahallas(
    start_lat: float = 41.25,
    start_lng: float = 69.18,
    rows: int = 3,
    cols: int = 3,
    lat_step: float = 0.01,
    lng_step: float = 0.02,
) -> list[dict]:
    """Grid of placeholder neighbourhood (mahalla) cells over Chilonzor."""
    features = []
    for i in range(rows):
        for j in range(cols):
            south = start_lat + i * lat_step
            west = start_lng + j * lng_step
            features.append({
                "type": "Feature",
                "properties": {"name": f"Mahalla-{i}-{j}"},
                "geometry": _box(west, south, west + lng_step, south + lat_step),
            })
    return features


NEIGHBORHOODS_GEOJSON = {
    "type": "FeatureCollection",
    "features": generate_mahallas(),
}
