"""Sentinel Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── API Keys ──
# API_KEY is the variable name the browser build read its Gemini key from
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "") or os.environ.get("API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# ── Static data ──
DATASETS_DIR = Path(
    os.environ.get("SENTINEL_DATASETS_DIR", "")
    or Path(__file__).resolve().parent.parent / "datasets"
)
BOUNDARIES_DIR = DATASETS_DIR / "boundaries"
CRIME_TOTALS_DIR = DATASETS_DIR / "jinoyat_turlari"

# ── Incident generation ──
INCIDENT_SCALE = 100          # one marker per this many recorded crimes
INCIDENT_RADIUS_KM = 18.0     # scatter radius around a region centre
KM_PER_DEGREE = 111.32
GRAND_TOTAL_KEY = "jami_respublika"

# (threshold, label): the first threshold a total strictly exceeds wins
SEVERITY_THRESHOLDS = [
    (5000, "Critical"),
    (2500, "High"),
    (1200, "Medium"),
]

HIGH_RISK_THRESHOLD = 70

# ── Map presentation ──
CRIME_COLORS = {
    "Theft": "#3b82f6",
    "Assault": "#ef4444",
    "Burglary": "#f97316",
    "Vandalism": "#eab308",
    "Narcotics": "#a855f7",
    "Traffic Violation": "#10b981",
    "Homicide": "#dc2626",
}

# Centre of Tashkent
INITIAL_MAP_CENTER = {"lat": 41.311081, "lng": 69.240562}
INITIAL_ZOOM = 12

# Dev servers the dashboard is usually served from
ALLOWED_ORIGINS = [
    f"http://localhost:{p}" for p in range(3000, 3010)
] + [
    f"http://localhost:{p}" for p in range(5173, 5180)
] + [
    f"http://127.0.0.1:{p}" for p in range(3000, 3010)
] + [
    f"http://127.0.0.1:{p}" for p in range(5173, 5180)
]
