"""Sentinel Backend — Per-region summary statistics.

Two sources feed the dashboard:
  - stats_from_totals:    published regional totals, risk relative to the
                          highest region in the set
  - stats_from_incidents: generated incidents, risk as 4× the region's share
                          of all incidents

The two risk formulas are intentionally not unified; each endpoint keeps the
one its charts were calibrated against.
"""

import logging
from collections import Counter
from typing import Iterable, Optional

import numpy as np

from config import HIGH_RISK_THRESHOLD
from incidents import round_half_up
from models import CategoryShare, CrimeIncident, CrimeType, RegionStats, RegionTotal

logger = logging.getLogger("sentinel.stats")


def stats_from_totals(
    totals: list[RegionTotal],
    default_type: CrimeType = CrimeType.THEFT,
) -> list[RegionStats]:
    max_total = max([t.totalCrimes for t in totals] + [1])
    return [
        RegionStats(
            regionName=t.regionName,
            totalCrimes=t.totalCrimes,
            riskScore=min(100, max(0, round_half_up(t.totalCrimes / max_total * 100))),
            trend="Stable",
            topCrimeType=default_type,
        )
        for t in totals
    ]


def stats_from_incidents(
    incidents: list[CrimeIncident],
    rng: Optional[np.random.Generator] = None,
) -> list[RegionStats]:
    """Group incidents by district (first-seen order) and summarize each group.

    The top crime type is the most frequent one, ties going to the type seen
    first. There is no time series behind generated incidents, so the trend
    is a coin flip between Up and Down.
    """
    if not incidents:
        return []
    rng = rng if rng is not None else np.random.default_rng()

    groups: dict[str, Counter] = {}
    for crime in incidents:
        groups.setdefault(crime.district, Counter())[crime.type] += 1

    stats = []
    for district, types in groups.items():
        total = sum(types.values())
        top_type = max(types, key=types.get)
        stats.append(RegionStats(
            regionName=district,
            totalCrimes=total,
            riskScore=min(100, int(total / len(incidents) * 400)),
            trend="Up" if rng.random() > 0.5 else "Down",
            topCrimeType=top_type,
        ))
    return stats


def filter_totals(totals: Iterable[RegionTotal], search: str = "") -> list[RegionTotal]:
    query = (search or "").lower()
    return [t for t in totals if query in t.regionName.lower()]


def high_risk_count(stats: Iterable[RegionStats], threshold: int = HIGH_RISK_THRESHOLD) -> int:
    return sum(1 for s in stats if s.riskScore > threshold)


def category_distribution(incidents: list[CrimeIncident]) -> list[CategoryShare]:
    """Incident count and share per crime type, most frequent first."""
    counts = Counter(c.type for c in incidents)
    denominator = len(incidents) or 1
    return [
        CategoryShare(name=name, value=value, share=value / denominator)
        for name, value in counts.most_common()
    ]


def format_stats_summary(stats: Iterable[RegionStats]) -> str:
    """One line per region, as fed to the analyst prompt."""
    return "\n".join(
        f"{s.regionName}: {s.totalCrimes} crimes, Risk Score {s.riskScore}, Top Issue: {s.topCrimeType.value}"
        for s in stats
    )
