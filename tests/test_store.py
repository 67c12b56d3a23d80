"""Unit tests for ValueSetStore: load, lookup, ordering, merge and snapshots."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from helpers import DIABETES_OID, LDL_OID
from vsac_service.cache import ResponseCache
from vsac_service.errors import ProtocolError
from vsac_service.models import Code, ValueSet
from vsac_service.store import ValueSetStore


@pytest.fixture()
def store(snapshot_file: Path) -> ValueSetStore:
    s = ValueSetStore()
    s.load(snapshot_file)
    return s


class TestLoad:
    """Tests for loading snapshots."""

    def test_load_converts_codes(self, store: ValueSetStore) -> None:
        assert len(store) == 3
        vs = store.find_best(LDL_OID, "20170320")
        assert vs is not None
        assert vs.codes == [
            Code("2093-3", "http://loinc.org", "2.58"),
            Code("2094-1", "http://loinc.org"),
        ]

    def test_missing_file_is_a_no_op(self, tmp_path: Path) -> None:
        s = ValueSetStore()
        s.load(tmp_path / "nope.json")
        assert len(s) == 0

    def test_malformed_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "valueset-db.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            ValueSetStore().load(path)

    def test_entry_without_codes_raises_protocol_error(self, tmp_path: Path) -> None:
        path = tmp_path / "valueset-db.json"
        path.write_text(json.dumps({"1.2.3": {"1": {"oid": "1.2.3"}}}))
        with pytest.raises(ProtocolError):
            ValueSetStore().load(path)

    def test_load_adds_to_existing_entries(self, store: ValueSetStore, tmp_path: Path) -> None:
        path = tmp_path / "extra.json"
        path.write_text(json.dumps({"9.9.9": {"1": {"codes": []}}}))
        store.load(path)
        assert len(store) == 4
        assert store.find_best(LDL_OID) is not None


class TestFindAll:
    """Tests for find_all()."""

    def test_all_versions_in_store_order(self, store: ValueSetStore) -> None:
        versions = [vs.version for vs in store.find_all(LDL_OID)]
        assert versions == ["20170320", "20200401"]

    def test_filtered_to_version(self, store: ValueSetStore) -> None:
        results = store.find_all(f"urn:oid:{LDL_OID}", "20170320")
        assert [vs.version for vs in results] == ["20170320"]

    def test_url_embedded_version(self, store: ValueSetStore) -> None:
        url = f"https://cts.nlm.nih.gov/fhir/ValueSet/{LDL_OID}|20200401"
        assert [vs.version for vs in store.find_all(url)] == ["20200401"]

    def test_explicit_version_overrides_embedded(self, store: ValueSetStore) -> None:
        url = f"http://cts.nlm.nih.gov/fhir/ValueSet/{LDL_OID}|20200401"
        assert [vs.version for vs in store.find_all(url, "20170320")] == ["20170320"]

    def test_unknown_oid_or_version(self, store: ValueSetStore) -> None:
        assert store.find_all("1.2.3.4") == []
        assert store.find_all(LDL_OID, "19990101") == []

    def test_has(self, store: ValueSetStore) -> None:
        assert store.has(LDL_OID)
        assert store.has(LDL_OID, "20170320")
        assert not store.has(LDL_OID, "19990101")
        assert not store.has("1.2.3.4")

    def test_empty_identifier(self, store: ValueSetStore) -> None:
        assert store.find_all(None) == []
        assert store.find_all("") == []


class TestFindBest:
    """Tests for find_best() and version ordering."""

    def test_none_when_missing(self, store: ValueSetStore) -> None:
        assert store.find_best("1.2.3.4") is None

    def test_single_match(self, store: ValueSetStore) -> None:
        vs = store.find_best(DIABETES_OID)
        assert vs is not None and vs.version == "20190315"

    def test_greatest_version_string_wins(self, store: ValueSetStore) -> None:
        vs = store.find_best(LDL_OID)
        assert vs is not None and vs.version == "20200401"

    def test_explicit_version_selects_older(self, store: ValueSetStore) -> None:
        vs = store.find_best(LDL_OID, "20170320")
        assert vs is not None and vs.version == "20170320"

    def test_ordering_is_lexicographic_not_numeric(self) -> None:
        s = ValueSetStore()
        s.merge("1.2.3", "10", ValueSet("1.2.3", "10"))
        s.merge("1.2.3", "9", ValueSet("1.2.3", "9"))
        best = s.find_best("1.2.3")
        assert best is not None and best.version == "9"

    def test_version_key_can_be_replaced(self) -> None:
        s = ValueSetStore(version_key=int)
        s.merge("1.2.3", "10", ValueSet("1.2.3", "10"))
        s.merge("1.2.3", "9", ValueSet("1.2.3", "9"))
        best = s.find_best("1.2.3")
        assert best is not None and best.version == "10"


class TestMerge:
    """Tests for merge()."""

    def test_merge_replaces_whole_code_list(self, store: ValueSetStore) -> None:
        replacement = ValueSet(LDL_OID, "20200401", [Code("13457-7", "http://loinc.org")])
        store.merge(LDL_OID, "20200401", replacement)
        vs = store.find_best(LDL_OID, "20200401")
        assert vs is not None
        assert vs.codes == [Code("13457-7", "http://loinc.org")]

    def test_merge_rejects_mismatched_keys(self) -> None:
        with pytest.raises(ValueError):
            ValueSetStore().merge("1.2.3", "1", ValueSet("1.2.3", "2"))


class TestSnapshotRoundTrip:
    """Writing a snapshot and loading it reproduces the store."""

    def test_round_trip(self, store: ValueSetStore, tmp_path: Path) -> None:
        cache = ResponseCache(tmp_path)
        path = cache.write_snapshot(store)
        assert path == tmp_path.resolve() / "valueset-db.json"

        reloaded = ValueSetStore()
        reloaded.load(path)
        assert reloaded == store
        assert reloaded.to_dict() == store.to_dict()

    def test_snapshot_shape(self, store: ValueSetStore) -> None:
        entry = store.to_dict()[LDL_OID]["20170320"]
        assert entry["oid"] == LDL_OID
        assert entry["version"] == "20170320"
        assert entry["codes"][1] == {"code": "2094-1", "system": "http://loinc.org"}
