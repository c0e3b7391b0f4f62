"""Tests for stage catalog loading and match storage."""

import sys
import os
import json
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from shared.constants import Mode, Phase
from shared.models import Stage
from server.catalog import Catalog, CatalogError
from server.match_state import MatchState
from server.match_store import MatchStore

PROJECT_STAGES = os.path.join(os.path.dirname(__file__), "..", "data", "stages.json")


def write_json(tmp_path, data):
    path = tmp_path / "stages.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestCatalog:
    def test_project_stage_file_loads(self):
        catalog = Catalog.from_file(PROJECT_STAGES)
        assert len(catalog) >= 8
        for sid in ("battlefield", "smashville", "ps2", "fd"):
            assert sid in catalog

    def test_keeps_file_order(self, tmp_path):
        path = write_json(tmp_path, [
            {"id": "fd", "name": "Final Destination", "short": "FD"},
            {"id": "battlefield", "name": "Battlefield"},
        ])
        catalog = Catalog.from_file(path)
        assert catalog.stage_ids == ["fd", "battlefield"]
        assert catalog.to_list() == [
            {"id": "fd", "name": "Final Destination", "short": "FD"},
            {"id": "battlefield", "name": "Battlefield", "short": "Battlefield"},
        ]

    def test_accepts_short_name_key(self, tmp_path):
        path = write_json(tmp_path, [{"id": "ps2", "name": "Pokemon Stadium 2", "shortName": "PS2"}])
        assert Catalog.from_file(path).get("ps2").short == "PS2"

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            Catalog.from_file(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "stages.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(CatalogError):
            Catalog.from_file(str(path))

    def test_not_a_list(self, tmp_path):
        with pytest.raises(CatalogError):
            Catalog.from_file(write_json(tmp_path, {"id": "fd"}))

    def test_entry_without_id(self, tmp_path):
        with pytest.raises(CatalogError):
            Catalog.from_file(write_json(tmp_path, [{"name": "Final Destination"}]))

    def test_duplicate_ids(self):
        with pytest.raises(CatalogError):
            Catalog([Stage("fd", "FD"), Stage("fd", "Final Destination")])

    def test_blank_id(self):
        with pytest.raises(CatalogError):
            Catalog([Stage("  ", "Nothing")])

    def test_membership_ignores_non_strings(self):
        catalog = Catalog([Stage("fd", "FD")])
        assert None not in catalog
        assert ["fd"] not in catalog


class TestMatchStore:
    def _store(self):
        return MatchStore(Catalog([Stage("fd", "FD"), Stage("ps2", "PS2")]))

    def test_get_or_create_creates_fresh_match(self):
        store = self._store()
        assert "m1" not in store
        state = store.get_or_create("m1")
        assert "m1" in store
        assert state.mode == Mode.FIRST_GAME
        assert state.phase == Phase.WINNER_BAN

    def test_get_or_create_returns_same_instance(self):
        store = self._store()
        assert store.get_or_create("m1") is store.get_or_create("m1")
        assert len(store) == 1

    def test_replace(self):
        store = self._store()
        store.get_or_create("m1").ban("fd")
        fresh = MatchState(store.catalog, Mode.LATER_GAME)
        store.replace("m1", fresh)
        assert store.get_or_create("m1") is fresh

    def test_match_ids(self):
        store = self._store()
        store.get_or_create("a")
        store.get_or_create("b")
        assert store.match_ids() == ["a", "b"]
