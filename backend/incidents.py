"""Sentinel Backend — Synthetic incident generation.

The crime-statistics datasets only publish one total per region. To draw
them on a map each total is expanded into individual markers: one marker per
INCIDENT_SCALE recorded crimes (at least one per region), scattered around
the region centre. Every marker of a dataset carries that dataset's crime
type; fine-grained labels come from classifier.classify.
"""

import json
import logging
import math
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from types import MappingProxyType
from typing import Optional

import numpy as np

from config import (
    CRIME_TOTALS_DIR, GRAND_TOTAL_KEY, INCIDENT_RADIUS_KM, INCIDENT_SCALE,
    KM_PER_DEGREE, SEVERITY_THRESHOLDS,
)
from models import Coordinates, CrimeIncident, CrimeType, DatasetKey, Language, RegionTotal

logger = logging.getLogger("sentinel.incidents")

DATASET_FILES = MappingProxyType({
    DatasetKey.ANIQLANADIGAN: "aniqlanadigan_jinoyatlar.json",
    DatasetKey.KIBER: "kiber_jinoyat.json",
    DatasetKey.OLDINI_OLISH: "oldini_olish.json",
})

MAP_DATASET_LABELS = MappingProxyType({
    Language.EN: {
        DatasetKey.ANIQLANADIGAN: "Detectable Crimes",
        DatasetKey.KIBER: "Cyber Crimes",
        DatasetKey.OLDINI_OLISH: "Preventable Crimes",
    },
    Language.UZ: {
        DatasetKey.ANIQLANADIGAN: "Aniqlanadigan jinoyatlar",
        DatasetKey.KIBER: "Kiber jinoyatlar",
        DatasetKey.OLDINI_OLISH: "Oldini olish mumkin bo`lgan jinoyatlar",
    },
    Language.RU: {
        DatasetKey.ANIQLANADIGAN: "Выявляемые преступления",
        DatasetKey.KIBER: "Киберпреступления",
        DatasetKey.OLDINI_OLISH: "Предотвращаемые преступления",
    },
})

DATASET_CRIME_TYPE = MappingProxyType({
    DatasetKey.ANIQLANADIGAN: CrimeType.THEFT,
    DatasetKey.KIBER: CrimeType.TRAFFIC,
    DatasetKey.OLDINI_OLISH: CrimeType.BURGLARY,
})

# Raw dataset region key → region display name used by the boundary files
RAW_REGION_TO_GEO = MappingProxyType({
    "Toshkent_shahri": "Toshkent sh.",
    "Toshkent_viloyati": "Toshkent viloyati",
    "Samarqand": "Samarqand viloyati",
    "Sirdaryo": "Sirdaryo viloyati",
    "Jizzax": "Jizzax viloyati",
    "Buxoro": "Buxoro viloyati",
    "Navoiy": "Navoiy viloyati",
    "Fargona": "Farg'ona viloyati",
    "Andijon": "Andijon viloyati",
    "Namangan": "Namangan viloyati",
    "Surxondaryo": "Surxondaryo viloyati",
    "Qashqadaryo": "Qashqadaryo viloyati",
    "Xorazm": "Xorazm viloyati",
    "Qoraqalpogiston_Respublikasi": "Qoraqalpogʻiston Respublikasi",
})

REGION_CENTER_MAP = MappingProxyType({
    "Toshkent sh.": (41.3111, 69.2797),
    "Toshkent viloyati": (41.0027, 69.2372),
    "Samarqand viloyati": (39.6542, 66.9597),
    "Sirdaryo viloyati": (40.838, 68.6617),
    "Jizzax viloyati": (40.1158, 67.8422),
    "Buxoro viloyati": (39.7747, 64.4286),
    "Navoiy viloyati": (40.0844, 65.3792),
    "Farg'ona viloyati": (40.3734, 71.7978),
    "Andijon viloyati": (40.7837, 72.3439),
    "Namangan viloyati": (41.0058, 71.6436),
    "Surxondaryo viloyati": (37.9409, 67.5709),
    "Qashqadaryo viloyati": (38.8411, 65.7888),
    "Xorazm viloyati": (41.55, 60.63),
    "Qoraqalpogʻiston Respublikasi": (43.7683, 59.0214),
})

# Severity of the Tashkent demo incidents, by crime type
SEVERITY_MAP = MappingProxyType({
    CrimeType.THEFT: "Low",
    CrimeType.ASSAULT: "High",
    CrimeType.BURGLARY: "Medium",
    CrimeType.VANDALISM: "Low",
    CrimeType.DRUGS: "Medium",
    CrimeType.TRAFFIC: "Low",
    CrimeType.HOMICIDE: "Critical",
})

TASHKENT_DISTRICTS = (
    "Chilonzor", "Yunusobod", "Mirzo Ulugbek", "Yashnobod", "Sergeli", "Shayxontohur",
    "Olmazor", "Uchtepa", "Bektemir", "Mirobod", "Yakkasaray", "Yangihayot",
)

# District → (Δlat, Δlng) applied to the Tashkent centre so the demo data clusters
_DISTRICT_SHIFTS = {
    "Yunusobod": (0.05, 0.0),
    "Sergeli": (-0.05, 0.0),
    "Yashnobod": (0.0, 0.05),
    "Chilonzor": (0.0, -0.04),
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def iso_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ─────────────────────────── Sampling ───────────────────────────

def sample_point(
    center_lat: float,
    center_lng: float,
    radius_km: float,
    rng: Optional[np.random.Generator] = None,
) -> Coordinates:
    """Random point in a disk of ``radius_km`` around the centre.

    r·sqrt(u) keeps the density uniform over the disk. The longitude offset is
    divided by cos(center_lat) with the latitude left in degrees, which is how
    the published maps were generated; it is not a geodesic correction.
    """
    rng = rng if rng is not None else np.random.default_rng()
    r = radius_km / KM_PER_DEGREE
    u, v = rng.random(2)
    w = r * math.sqrt(u)
    t = 2 * math.pi * v
    x = w * math.cos(t)
    y = w * math.sin(t)
    return Coordinates(lat=center_lat + x, lng=center_lng + y / math.cos(center_lat))


def severity_for_total(total: float) -> str:
    for threshold, label in SEVERITY_THRESHOLDS:
        if total > threshold:
            return label
    return "Low"


def points_for_total(total: float) -> int:
    return max(1, round_half_up(total / INCIDENT_SCALE))


# ─────────────────────────── Dataset parsing ────────────────────

def parse_dataset(data: dict) -> dict[str, float]:
    """Per-region totals of one aggregate dataset.

    Datasets hold a single titled section of ``raw region → total`` plus the
    nationwide ``jami_respublika`` figure, which is ignored. Non-numeric and
    non-finite totals are dropped; the rest are kept as published.
    """
    section = next(
        (value for key, value in (data or {}).items() if key != GRAND_TOTAL_KEY),
        None,
    )
    if not isinstance(section, dict):
        return {}

    counts = {}
    for raw_region, total in section.items():
        if raw_region == GRAND_TOTAL_KEY:
            continue
        if isinstance(total, bool) or not isinstance(total, (int, float)):
            logger.debug(f"Skipping non-numeric total for {raw_region}: {total!r}")
            continue
        if not math.isfinite(total):
            logger.debug(f"Skipping non-finite total for {raw_region}: {total!r}")
            continue
        counts[raw_region] = total
    return counts


def extract_region_totals(data: dict) -> list[RegionTotal]:
    totals = []
    for raw_region, total in parse_dataset(data).items():
        region = RAW_REGION_TO_GEO.get(raw_region)
        if region is None:
            continue
        totals.append(RegionTotal(regionName=region, totalCrimes=max(0, round_half_up(total))))
    return totals


def generate_dataset_incidents(
    dataset_key: DatasetKey,
    data: dict,
    rng: Optional[np.random.Generator] = None,
    now: Optional[datetime] = None,
) -> list[CrimeIncident]:
    """Expand one dataset's regional totals into individual map incidents.

    Ids are ``<DATASET>-<n:05d>`` with n counting from 1 within this call, so
    the same dataset always yields the same id sequence.
    """
    dataset_key = DatasetKey(dataset_key)
    rng = rng if rng is not None else np.random.default_rng()
    timestamp = iso_timestamp(now or datetime.now(timezone.utc))
    crime_type = DATASET_CRIME_TYPE[dataset_key]
    prefix = dataset_key.value.upper()

    crimes = []
    index = 1
    for raw_region, total in parse_dataset(data).items():
        region = RAW_REGION_TO_GEO.get(raw_region)
        if region is None or region not in REGION_CENTER_MAP:
            continue

        center_lat, center_lng = REGION_CENTER_MAP[region]
        severity = severity_for_total(total)
        for _ in range(points_for_total(total)):
            crimes.append(CrimeIncident(
                id=f"{prefix}-{index:05d}",
                type=crime_type,
                date=timestamp,
                location=sample_point(center_lat, center_lng, INCIDENT_RADIUS_KM, rng),
                region="Uzbekistan",
                district=region,
                description=f"{region}: {total} ta holat",
                severity=severity,
            ))
            index += 1

    logger.info(f"Generated {len(crimes)} incidents for dataset {dataset_key.value}")
    return crimes


def generate_mock_crimes(
    count: int,
    rng: Optional[np.random.Generator] = None,
    now: Optional[datetime] = None,
) -> list[CrimeIncident]:
    """Random Tashkent incidents over the last 30 days, for demos without datasets."""
    rng = rng if rng is not None else np.random.default_rng()
    now = now or datetime.now(timezone.utc)
    types = list(CrimeType)

    crimes = []
    for i in range(count):
        crime_type = types[int(rng.integers(len(types)))]
        district = TASHKENT_DISTRICTS[int(rng.integers(len(TASHKENT_DISTRICTS)))]
        date = now - timedelta(days=int(rng.integers(30)))
        d_lat, d_lng = _DISTRICT_SHIFTS.get(district, (0.0, 0.0))

        crimes.append(CrimeIncident(
            id=f"UZ-{1000 + i}",
            type=crime_type,
            date=iso_timestamp(date),
            location=sample_point(41.311081 + d_lat, 69.240562 + d_lng, 3.5, rng),
            region="Tashkent",
            district=district,
            description=f"Reported incident of {crime_type.value.lower()} in {district}.",
            severity=SEVERITY_MAP[crime_type],
        ))
    return crimes


# ─────────────────────────── Bundled datasets ───────────────────

@lru_cache(maxsize=None)
def _load_dataset(dataset_key: DatasetKey) -> dict:
    path = CRIME_TOTALS_DIR / DATASET_FILES[dataset_key]
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Loaded crime totals from {path.name}")
        return data
    except FileNotFoundError:
        logger.warning(f"Crime totals not found: {path}")
        return {}
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse crime totals {path.name}: {e}")
        return {}


def generate_incidents(dataset_key: DatasetKey) -> list[CrimeIncident]:
    """Fresh incidents for a bundled dataset (new coordinates on every call)."""
    return generate_dataset_incidents(dataset_key, _load_dataset(DatasetKey(dataset_key)))


def region_totals(dataset_key: DatasetKey) -> list[RegionTotal]:
    return extract_region_totals(_load_dataset(DatasetKey(dataset_key)))


@lru_cache(maxsize=None)
def _dataset_snapshot(dataset_key: DatasetKey) -> tuple[CrimeIncident, ...]:
    return tuple(generate_incidents(dataset_key))


def dataset_incidents(dataset_key: DatasetKey) -> list[CrimeIncident]:
    """Incidents generated once per process, so map and table agree between requests."""
    return [c.model_copy(deep=True) for c in _dataset_snapshot(DatasetKey(dataset_key))]
