"""Sentinel Backend — Pydantic Models"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class CrimeType(str, Enum):
    THEFT = "Theft"
    ASSAULT = "Assault"
    BURGLARY = "Burglary"
    VANDALISM = "Vandalism"
    DRUGS = "Narcotics"
    TRAFFIC = "Traffic Violation"
    HOMICIDE = "Homicide"


class DatasetKey(str, Enum):
    ANIQLANADIGAN = "aniqlanadigan"
    KIBER = "kiber"
    OLDINI_OLISH = "oldini_olish"


class FilterKey(str, Enum):
    """Fine-grained labels used only for filtering the incident list."""

    DRUGS = "drugs"
    EXTREMISM = "extremism"
    HUMAN_TRAFFICKING = "human_trafficking"
    BRIBERY = "bribery"
    EXTORTION = "extortion"
    FRAUD = "fraud"
    THEFT = "theft"
    INTENTIONAL_HOMICIDE = "intentional_homicide"
    RAPE = "rape"
    ROBBERY = "robbery"
    LOOTING = "looting"
    HOOLIGANISM = "hooliganism"


class Language(str, Enum):
    EN = "en"
    UZ = "uz"
    RU = "ru"


Severity = Literal["Low", "Medium", "High", "Critical"]
Trend = Literal["Up", "Down", "Stable"]


class Coordinates(BaseModel):
    lat: float
    lng: float


class CrimeIncident(BaseModel):
    id: str
    type: CrimeType
    date: str  # ISO-8601
    location: Coordinates
    region: str
    district: str
    description: str
    severity: Severity


class RegionTotal(BaseModel):
    regionName: str
    totalCrimes: int = Field(ge=0)


class RegionStats(BaseModel):
    regionName: str
    totalCrimes: int
    riskScore: int = Field(ge=0, le=100)
    trend: Trend
    topCrimeType: CrimeType


# ─────────────────────────── Boundary GeoJSON ──────────────────

class RawGeometry(BaseModel, extra="allow"):
    """Any GeoJSON geometry; only ``type`` is checked here."""

    type: str


class RawFeature(BaseModel, extra="allow"):
    type: Literal["Feature"] = "Feature"
    properties: Optional[dict[str, Any]] = None
    geometry: Optional[RawGeometry] = None


class RawFeatureCollection(BaseModel, extra="allow"):
    type: Literal["FeatureCollection"]
    features: list[RawFeature] = []


# ─────────────────────────── API payloads ──────────────────────

class FilterOption(BaseModel):
    key: FilterKey
    label: str


class DatasetInfo(BaseModel):
    key: DatasetKey
    label: str
    crimeType: CrimeType
    filters: list[FilterOption]


class CategoryShare(BaseModel):
    name: CrimeType
    value: int
    share: float


class DashboardSummary(BaseModel):
    dataset: DatasetKey
    incidentCount: int
    regionCount: int
    highRiskRegions: int
    categories: list[CategoryShare]


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    text: str


class AnalysisRequest(BaseModel):
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN
    language: Language = Language.UZ
    search: str = ""
    filter: Optional[FilterKey] = None


class AnalysisResponse(BaseModel):
    summary: str
    error: Optional[str] = None


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN
    language: Language = Language.UZ
    search: str = ""
    filter: Optional[FilterKey] = None
    history: list[ChatTurn] = []


class ChatResponse(BaseModel):
    reply: str
    error: Optional[str] = None
