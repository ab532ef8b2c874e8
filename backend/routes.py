"""Sentinel Backend — FastAPI Routes"""

import logging
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from analyst import chat_with_data, generate_crime_analysis
from classifier import filter_incidents, filter_options
from config import ALLOWED_ORIGINS, CRIME_COLORS, INITIAL_MAP_CENTER, INITIAL_ZOOM
from geo_data import (
    NEIGHBORHOODS_GEOJSON, UZBEKISTAN_BORDER, districts_for, region_index, region_names,
)
from incidents import DATASET_CRIME_TYPE, MAP_DATASET_LABELS, dataset_incidents, region_totals
from models import (
    AnalysisRequest, AnalysisResponse, ChatRequest, ChatResponse, CrimeIncident,
    CrimeType, DashboardSummary, DatasetInfo, DatasetKey, FilterKey, Language, RegionStats,
)
from region_stats import (
    category_distribution, filter_totals, high_risk_count, stats_from_incidents,
    stats_from_totals,
)

logger = logging.getLogger("sentinel")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="Sentinel Crime Analytics API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """Build the boundary index and incident snapshots before the first request."""
    names = region_names()
    counts = {key.value: len(dataset_incidents(key)) for key in DatasetKey}
    logger.info(f"Region index ready ({len(names)} features); incidents per dataset: {counts}")


# ─────────────────────────── Helpers ────────────────────────────

def _filtered_incidents(
    dataset: DatasetKey, search: str, filter_key: Optional[FilterKey],
) -> list[CrimeIncident]:
    return filter_incidents(dataset_incidents(dataset), dataset, search, filter_key)


def _totals_stats(dataset: DatasetKey, search: str, crimes: list[CrimeIncident]) -> list[RegionStats]:
    default_type = crimes[0].type if crimes else CrimeType.THEFT
    return stats_from_totals(filter_totals(region_totals(dataset), search), default_type)


# ─────────────────────────── Boundaries ─────────────────────────

@app.get("/api/health")
async def health():
    return {"status": "ok"}


@app.get("/api/map-config")
async def map_config():
    return {"center": INITIAL_MAP_CENTER, "zoom": INITIAL_ZOOM, "colors": CRIME_COLORS}


@app.get("/api/boundaries/country")
async def country_boundary():
    return UZBEKISTAN_BORDER


@app.get("/api/boundaries/regions")
async def regions_boundaries():
    return region_index()


@app.get("/api/boundaries/regions/{region_name}/districts")
async def region_districts(region_name: str):
    """District layer for one region; unknown regions give an empty collection."""
    return districts_for(region_name)


@app.get("/api/boundaries/districts")
async def tashkent_districts():
    return districts_for("Toshkent sh.")


@app.get("/api/boundaries/neighborhoods")
async def neighborhoods():
    return NEIGHBORHOODS_GEOJSON


# ─────────────────────────── Datasets & Incidents ───────────────

@app.get("/api/datasets", response_model=list[DatasetInfo])
async def list_datasets(language: Language = Language.UZ):
    return [
        DatasetInfo(
            key=key,
            label=MAP_DATASET_LABELS[language][key],
            crimeType=DATASET_CRIME_TYPE[key],
            filters=filter_options(key, language),
        )
        for key in DatasetKey
    ]


@app.get("/api/incidents", response_model=list[CrimeIncident])
async def list_incidents(
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN,
    search: str = "",
    filter: Optional[FilterKey] = Query(default=None),
):
    return _filtered_incidents(dataset, search, filter)


# ─────────────────────────── Statistics ─────────────────────────

@app.get("/api/stats", response_model=list[RegionStats])
async def region_statistics(
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN,
    search: str = "",
    filter: Optional[FilterKey] = Query(default=None),
):
    """Region statistics from the published totals (region-name search only)."""
    crimes = _filtered_incidents(dataset, search, filter)
    return _totals_stats(dataset, search, crimes)


@app.get("/api/stats/incidents", response_model=list[RegionStats])
async def incident_statistics(
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN,
    search: str = "",
    filter: Optional[FilterKey] = Query(default=None),
):
    return stats_from_incidents(_filtered_incidents(dataset, search, filter))


@app.get("/api/stats/summary", response_model=DashboardSummary)
async def dashboard_summary(
    dataset: DatasetKey = DatasetKey.ANIQLANADIGAN,
    search: str = "",
    filter: Optional[FilterKey] = Query(default=None),
):
    crimes = _filtered_incidents(dataset, search, filter)
    stats = _totals_stats(dataset, search, crimes)
    return DashboardSummary(
        dataset=dataset,
        incidentCount=len(crimes),
        regionCount=len(stats),
        highRiskRegions=high_risk_count(stats),
        categories=category_distribution(crimes),
    )


# ─────────────────────────── AI Analyst (Gemini Proxy) ──────────

@app.post("/api/analysis", response_model=AnalysisResponse)
async def crime_analysis(req: AnalysisRequest):
    """Executive summary of the current view, keeping the API key server-side."""
    crimes = _filtered_incidents(req.dataset, req.search, req.filter)
    stats = _totals_stats(req.dataset, req.search, crimes)
    return await generate_crime_analysis(stats, crimes, req.language)


@app.post("/api/chat", response_model=ChatResponse)
async def crime_chat(req: ChatRequest):
    crimes = _filtered_incidents(req.dataset, req.search, req.filter)
    stats = _totals_stats(req.dataset, req.search, crimes)
    return await chat_with_data(req.message, stats, crimes, req.history, req.language)
