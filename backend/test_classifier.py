"""Stable filter labels and incident filtering."""

import numpy as np
import pytest

import classifier
from classifier import (
    DATASET_FILTER_KEYS, FILTER_LABELS, classify, filter_incidents, filter_options, id_hash,
)
from incidents import generate_dataset_incidents
from models import DatasetKey, FilterKey, Language


class TestIdHash:
    def test_matches_31_multiplier_string_hash(self):
        assert id_hash("") == 0
        assert id_hash("A") == 65
        assert id_hash("AB") == 65 * 31 + 66
        assert id_hash("hello") == 99162322

    def test_wraps_to_unsigned_32_bit(self):
        # Java's String.hashCode of this word is Integer.MIN_VALUE
        assert id_hash("polygenelubricants") == 2 ** 31
        assert 0 <= id_hash("ANIQLANADIGAN-00001" * 50) < 2 ** 32

    def test_counts_utf16_code_units(self):
        assert id_hash("\U0001F600") == 0xD83D * 31 + 0xDE00


class TestClassify:
    def test_known_values(self):
        assert classify("hello", DatasetKey.ANIQLANADIGAN) == FilterKey.HUMAN_TRAFFICKING
        assert classify("hello", DatasetKey.KIBER) == FilterKey.FRAUD
        assert classify("polygenelubricants", DatasetKey.OLDINI_OLISH) == FilterKey.ROBBERY
        assert classify("polygenelubricants", DatasetKey.ANIQLANADIGAN) == FilterKey.DRUGS

    @pytest.mark.parametrize("key", list(DatasetKey))
    def test_result_is_a_dataset_label(self, key):
        for n in range(1, 200):
            assert classify(f"{key.value.upper()}-{n:05d}", key) in DATASET_FILTER_KEYS[key]

    def test_repeated_calls_agree(self):
        ids = [f"KIBER-{n:05d}" for n in range(1, 100)]
        first = [classify(i, DatasetKey.KIBER) for i in ids]
        second = [classify(i, DatasetKey.KIBER) for i in reversed(ids)]
        assert first == list(reversed(second))

    def test_empty_configuration_falls_back(self, monkeypatch):
        monkeypatch.setattr(classifier, "DATASET_FILTER_KEYS", {DatasetKey.KIBER: ()})
        assert classify("KIBER-00001", DatasetKey.KIBER) == FilterKey.THEFT

    def test_unknown_dataset_falls_back(self):
        assert classify("X-00001", "unknown") == FilterKey.THEFT


class TestFilterIncidents:
    @pytest.fixture
    def crimes(self):
        data = {"section": {"Samarqand": 900, "Buxoro": 400, "Xorazm": 300}}
        return generate_dataset_incidents(DatasetKey.OLDINI_OLISH, data, np.random.default_rng(0))

    def test_no_filters_keeps_everything(self, crimes):
        assert filter_incidents(crimes, DatasetKey.OLDINI_OLISH) == crimes

    def test_search_is_case_insensitive_substring(self, crimes):
        result = filter_incidents(crimes, DatasetKey.OLDINI_OLISH, search="BUXORO")
        assert len(result) == 4
        assert {c.district for c in result} == {"Buxoro viloyati"}

    def test_search_matches_description(self, crimes):
        result = filter_incidents(crimes, DatasetKey.OLDINI_OLISH, search="300 ta holat")
        assert {c.district for c in result} == {"Xorazm viloyati"}

    def test_filter_key_selects_by_id(self, crimes):
        for key in DATASET_FILTER_KEYS[DatasetKey.OLDINI_OLISH]:
            result = filter_incidents(crimes, DatasetKey.OLDINI_OLISH, filter_key=key)
            assert all(classify(c.id, DatasetKey.OLDINI_OLISH) == key for c in result)

    def test_labels_survive_search(self, crimes):
        before = {c.id: classify(c.id, DatasetKey.OLDINI_OLISH) for c in crimes}
        searched = filter_incidents(crimes, DatasetKey.OLDINI_OLISH, search="xorazm")
        assert all(classify(c.id, DatasetKey.OLDINI_OLISH) == before[c.id] for c in searched)

    def test_filter_partitions_the_list(self, crimes):
        total = sum(
            len(filter_incidents(crimes, DatasetKey.OLDINI_OLISH, filter_key=key))
            for key in DATASET_FILTER_KEYS[DatasetKey.OLDINI_OLISH]
        )
        assert total == len(crimes)


def test_filter_options_localized():
    options = filter_options(DatasetKey.KIBER, Language.RU)
    assert [o.key for o in options] == [FilterKey.EXTORTION, FilterKey.FRAUD, FilterKey.THEFT]
    assert [o.label for o in options] == ["Вымогательство", "Мошенничество", "Кража"]


def test_every_label_translated():
    for language in Language:
        assert set(FILTER_LABELS[language]) == set(FilterKey)
