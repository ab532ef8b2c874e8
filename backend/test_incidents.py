"""Incident expansion from regional totals."""

import math
from collections import Counter
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from config import INCIDENT_RADIUS_KM, KM_PER_DEGREE
from incidents import (
    REGION_CENTER_MAP, SEVERITY_MAP, dataset_incidents, extract_region_totals,
    generate_dataset_incidents, generate_incidents, generate_mock_crimes, parse_dataset,
    points_for_total, region_totals, sample_point, severity_for_total,
)
from models import CrimeType, DatasetKey

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class _FixedRng:
    """Stands in for numpy's Generator, returning preset uniform draws."""

    def __init__(self, *draws):
        self._draws = list(draws)

    def random(self, size):
        values, self._draws = self._draws[:size], self._draws[size:]
        return np.array(values)


def _disk_offset(point, center_lat, center_lng):
    """Undo the sampler's longitude correction and return the offset radius in degrees."""
    x = point.lat - center_lat
    y = (point.lng - center_lng) * math.cos(center_lat)
    return math.hypot(x, y)


# ─────────────────────────────────────────────────────────────────
# Sampler
# ─────────────────────────────────────────────────────────────────

class TestSamplePoint:
    def test_radius_and_angle(self):
        r = 10 / KM_PER_DEGREE
        point = sample_point(40.0, 65.0, 10, rng=_FixedRng(0.25, 0.0))
        assert point.lat == pytest.approx(40.0 + r * 0.5)
        assert point.lng == pytest.approx(65.0)

    def test_longitude_uses_degrees_in_cosine(self):
        r = 10 / KM_PER_DEGREE
        point = sample_point(40.0, 65.0, 10, rng=_FixedRng(1.0, 0.25))
        assert point.lat == pytest.approx(40.0, abs=1e-12)
        assert point.lng == pytest.approx(65.0 + r / math.cos(40.0))

    def test_points_stay_in_disk(self):
        rng = np.random.default_rng(7)
        r = INCIDENT_RADIUS_KM / KM_PER_DEGREE
        for _ in range(500):
            point = sample_point(41.3111, 69.2797, INCIDENT_RADIUS_KM, rng)
            assert _disk_offset(point, 41.3111, 69.2797) <= r + 1e-12

    def test_seeded_generator_is_reproducible(self):
        a = sample_point(39.0, 66.0, 5, np.random.default_rng(42))
        b = sample_point(39.0, 66.0, 5, np.random.default_rng(42))
        assert a == b


# ─────────────────────────────────────────────────────────────────
# Scaling & severity
# ─────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("total,expected", [
    (0, 1), (49, 1), (50, 1), (149, 1), (150, 2), (250, 3), (6000, 60), (6049, 60), (6050, 61),
])
def test_points_for_total(total, expected):
    assert points_for_total(total) == expected


@pytest.mark.parametrize("total,expected", [
    (6000, "Critical"), (5001, "Critical"), (5000, "High"), (2501, "High"),
    (2500, "Medium"), (1300, "Medium"), (1200, "Low"), (800, "Low"), (0, "Low"),
])
def test_severity_for_total(total, expected):
    assert severity_for_total(total) == expected


# ─────────────────────────────────────────────────────────────────
# Dataset parsing
# ─────────────────────────────────────────────────────────────────

class TestParseDataset:
    def test_skips_grand_total(self):
        data = {"jami_respublika": 900, "section": {"Samarqand": 500, "Buxoro": 400}}
        assert parse_dataset(data) == {"Samarqand": 500, "Buxoro": 400}

    def test_drops_non_numeric_totals(self):
        data = {"section": {"Samarqand": 500, "Buxoro": "n/a", "Navoiy": None, "Jizzax": True}}
        assert parse_dataset(data) == {"Samarqand": 500}

    def test_drops_non_finite_totals(self):
        data = {"section": {"Samarqand": 500, "Navoiy": float("nan"), "Jizzax": float("inf")}}
        assert parse_dataset(data) == {"Samarqand": 500}

        crimes = generate_dataset_incidents(
            DatasetKey.KIBER, {"s": {"Navoiy": float("nan")}}, np.random.default_rng(0), NOW,
        )
        assert crimes == []

    def test_fractional_totals_keep_raw_value(self):
        assert parse_dataset({"section": {"Samarqand": 5000.5}}) == {"Samarqand": 5000.5}

        crimes = generate_dataset_incidents(
            DatasetKey.KIBER, {"s": {"Samarqand": 5000.5}}, np.random.default_rng(0), NOW,
        )
        assert len(crimes) == 50
        assert {c.severity for c in crimes} == {"Critical"}

        totals = extract_region_totals({"s": {"Samarqand": 249.5}})
        assert [(t.regionName, t.totalCrimes) for t in totals] == [("Samarqand viloyati", 250)]

    def test_empty_inputs(self):
        assert parse_dataset({}) == {}
        assert parse_dataset({"jami_respublika": 10}) == {}
        assert parse_dataset({"section": 12}) == {}

    def test_region_totals_map_display_names(self):
        data = {"section": {"Fargona": 2640, "Atlantis": 50}, "jami_respublika": 2690}
        totals = extract_region_totals(data)
        assert [(t.regionName, t.totalCrimes) for t in totals] == [("Farg'ona viloyati", 2640)]


# ─────────────────────────────────────────────────────────────────
# Generation
# ─────────────────────────────────────────────────────────────────

class TestGenerateDatasetIncidents:
    def test_small_total_scenario(self):
        data = {"aniqlanadigan_jinoyatlar": {"Samarqand": 250}, "jami_respublika": 250}
        crimes = generate_dataset_incidents(DatasetKey.ANIQLANADIGAN, data, np.random.default_rng(1), NOW)

        assert [c.id for c in crimes] == ["ANIQLANADIGAN-00001", "ANIQLANADIGAN-00002", "ANIQLANADIGAN-00003"]
        center_lat, center_lng = REGION_CENTER_MAP["Samarqand viloyati"]
        r = INCIDENT_RADIUS_KM / KM_PER_DEGREE
        for crime in crimes:
            assert crime.type == CrimeType.THEFT
            assert crime.severity == "Low"
            assert crime.district == "Samarqand viloyati"
            assert crime.region == "Uzbekistan"
            assert crime.description == "Samarqand viloyati: 250 ta holat"
            assert crime.date == "2024-05-01T12:00:00.000Z"
            assert _disk_offset(crime.location, center_lat, center_lng) <= r + 1e-12

    def test_severity_by_region_total(self):
        data = {"section": {"Toshkent_shahri": 6000, "Jizzax": 2600, "Samarqand": 1300, "Buxoro": 800}}
        crimes = generate_dataset_incidents(DatasetKey.KIBER, data, np.random.default_rng(3), NOW)

        severities = {c.district: c.severity for c in crimes}
        assert severities == {
            "Toshkent sh.": "Critical",
            "Jizzax viloyati": "High",
            "Samarqand viloyati": "Medium",
            "Buxoro viloyati": "Low",
        }
        assert all(c.type == CrimeType.TRAFFIC for c in crimes)
        counts = Counter(c.district for c in crimes)
        assert counts == {"Toshkent sh.": 60, "Jizzax viloyati": 26, "Samarqand viloyati": 13, "Buxoro viloyati": 8}

    def test_unmapped_regions_skipped_and_ids_stay_contiguous(self):
        data = {"section": {"Atlantis": 900, "Navoiy": 100, "Xorazm": 100}}
        crimes = generate_dataset_incidents(DatasetKey.OLDINI_OLISH, data, np.random.default_rng(0), NOW)
        assert [c.id for c in crimes] == ["OLDINI_OLISH-00001", "OLDINI_OLISH-00002"]
        assert [c.district for c in crimes] == ["Navoiy viloyati", "Xorazm viloyati"]
        assert all(c.type == CrimeType.BURGLARY for c in crimes)

    def test_counts_and_labels_stable_across_runs(self):
        data = {"section": {"Andijon": 2310, "Namangan": 1980, "Sirdaryo": 860}}
        first = generate_dataset_incidents(DatasetKey.ANIQLANADIGAN, data, np.random.default_rng(10))
        second = generate_dataset_incidents(DatasetKey.ANIQLANADIGAN, data, np.random.default_rng(11))

        assert Counter(c.district for c in first) == Counter(c.district for c in second)
        assert [(c.id, c.type, c.severity) for c in first] == [(c.id, c.type, c.severity) for c in second]
        assert [c.location for c in first] != [c.location for c in second]

    def test_accepts_plain_string_key(self):
        crimes = generate_dataset_incidents("kiber", {"s": {"Navoiy": 10}}, np.random.default_rng(0), NOW)
        assert crimes[0].id == "KIBER-00001"

    def test_empty_dataset(self):
        assert generate_dataset_incidents(DatasetKey.KIBER, {}, np.random.default_rng(0), NOW) == []


class TestBundledDatasets:
    @pytest.mark.parametrize("key", list(DatasetKey))
    def test_generated_count_matches_totals(self, key):
        totals = region_totals(key)
        crimes = generate_incidents(key)
        assert len(totals) == 14
        assert len(crimes) == sum(points_for_total(t.totalCrimes) for t in totals)
        assert len({c.id for c in crimes}) == len(crimes)

    def test_snapshot_is_stable_within_process(self):
        first = dataset_incidents(DatasetKey.ANIQLANADIGAN)
        second = dataset_incidents(DatasetKey.ANIQLANADIGAN)
        assert first == second
        first[0].district = "changed"
        assert dataset_incidents(DatasetKey.ANIQLANADIGAN)[0].district != "changed"


def test_mock_crimes():
    crimes = generate_mock_crimes(200, np.random.default_rng(5), NOW)
    assert len(crimes) == 200
    assert crimes[0].id == "UZ-1000"
    assert crimes[-1].id == "UZ-1199"
    for crime in crimes:
        assert crime.region == "Tashkent"
        assert crime.severity == SEVERITY_MAP[crime.type]
        assert crime.description == f"Reported incident of {crime.type.value.lower()} in {crime.district}."
        date = datetime.fromisoformat(crime.date.replace("Z", "+00:00"))
        assert NOW - timedelta(days=29) <= date <= NOW
