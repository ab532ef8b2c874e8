"""Sentinel Backend — Filter labels for generated incidents.

Each dataset has one coarse crime type, but the dashboard filters on finer
labels (drugs, fraud, robbery, ...). An incident's label is picked by a stable
hash of its id, so it never changes when the list is re-filtered or the
process restarts.
"""

import logging
from types import MappingProxyType
from typing import Iterable, Optional

from models import CrimeIncident, DatasetKey, FilterKey, FilterOption, Language

logger = logging.getLogger("sentinel.classifier")

DEFAULT_FILTER_KEY = FilterKey.THEFT

DATASET_FILTER_KEYS = MappingProxyType({
    DatasetKey.ANIQLANADIGAN: (
        FilterKey.DRUGS, FilterKey.EXTREMISM, FilterKey.HUMAN_TRAFFICKING, FilterKey.BRIBERY,
    ),
    DatasetKey.KIBER: (
        FilterKey.EXTORTION, FilterKey.FRAUD, FilterKey.THEFT,
    ),
    DatasetKey.OLDINI_OLISH: (
        FilterKey.INTENTIONAL_HOMICIDE, FilterKey.RAPE, FilterKey.ROBBERY, FilterKey.LOOTING,
        FilterKey.FRAUD, FilterKey.THEFT, FilterKey.HOOLIGANISM,
    ),
})

FILTER_LABELS = MappingProxyType({
    Language.UZ: {
        FilterKey.DRUGS: "Giyohvandlik",
        FilterKey.EXTREMISM: "Ekstremizm",
        FilterKey.HUMAN_TRAFFICKING: "Odam savdosi",
        FilterKey.BRIBERY: "Poraxo'rlik",
        FilterKey.EXTORTION: "Tovlamachilik",
        FilterKey.FRAUD: "Firibgarlik",
        FilterKey.THEFT: "O'g'rilik",
        FilterKey.INTENTIONAL_HOMICIDE: "Qasddan odam o'ldirish",
        FilterKey.RAPE: "Nomusga tegish",
        FilterKey.ROBBERY: "Bosqinchilik",
        FilterKey.LOOTING: "Talonchilik",
        FilterKey.HOOLIGANISM: "Bezorilik",
    },
    Language.EN: {
        FilterKey.DRUGS: "Narcotics",
        FilterKey.EXTREMISM: "Extremism",
        FilterKey.HUMAN_TRAFFICKING: "Human trafficking",
        FilterKey.BRIBERY: "Bribery",
        FilterKey.EXTORTION: "Extortion",
        FilterKey.FRAUD: "Fraud",
        FilterKey.THEFT: "Theft",
        FilterKey.INTENTIONAL_HOMICIDE: "Intentional homicide",
        FilterKey.RAPE: "Sexual assault",
        FilterKey.ROBBERY: "Robbery",
        FilterKey.LOOTING: "Looting",
        FilterKey.HOOLIGANISM: "Hooliganism",
    },
    Language.RU: {
        FilterKey.DRUGS: "Наркотики",
        FilterKey.EXTREMISM: "Экстремизм",
        FilterKey.HUMAN_TRAFFICKING: "Торговля людьми",
        FilterKey.BRIBERY: "Взяточничество",
        FilterKey.EXTORTION: "Вымогательство",
        FilterKey.FRAUD: "Мошенничество",
        FilterKey.THEFT: "Кража",
        FilterKey.INTENTIONAL_HOMICIDE: "Умышленное убийство",
        FilterKey.RAPE: "Изнасилование",
        FilterKey.ROBBERY: "Разбой",
        FilterKey.LOOTING: "Грабеж",
        FilterKey.HOOLIGANISM: "Хулиганство",
    },
})


def id_hash(incident_id: str) -> int:
    """31-multiplier string hash kept in unsigned 32-bit range.

    Works on UTF-16 code units so ids outside the BMP hash the same as in
    the browser dashboard.
    """
    data = incident_id.encode("utf-16-le", errors="surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        h = (h * 31 + int.from_bytes(data[i:i + 2], "little")) & 0xFFFFFFFF
    return h


def classify(incident_id: str, dataset_key: DatasetKey) -> FilterKey:
    options = DATASET_FILTER_KEYS.get(dataset_key, ())
    if not options:
        logger.warning(f"No filter categories configured for {dataset_key}, using {DEFAULT_FILTER_KEY.value}")
        return DEFAULT_FILTER_KEY
    return options[id_hash(incident_id) % len(options)]


def filter_options(dataset_key: DatasetKey, language: Language) -> list[FilterOption]:
    labels = FILTER_LABELS[language]
    return [FilterOption(key=k, label=labels[k]) for k in DATASET_FILTER_KEYS.get(dataset_key, ())]


def filter_incidents(
    incidents: Iterable[CrimeIncident],
    dataset_key: DatasetKey,
    search: str = "",
    filter_key: Optional[FilterKey] = None,
) -> list[CrimeIncident]:
    """Incidents matching a free-text search and, optionally, one filter label.

    The search is a case-insensitive substring match on district or
    description; ``filter_key=None`` keeps every label.
    """
    query = (search or "").lower()
    result = []
    for crime in incidents:
        matches_search = query in crime.district.lower() or query in crime.description.lower()
        matches_type = filter_key is None or classify(crime.id, dataset_key) == filter_key
        if matches_search and matches_type:
            result.append(crime)
    return result
