"""Stage catalog: the ordered, immutable list of selectable stages."""

import json
import os
from typing import Iterable, Iterator, Optional

from shared.models import Stage


class CatalogError(ValueError):
    """The stage list could not be loaded."""


class Catalog:
    def __init__(self, stages: Iterable[Stage]):
        self._stages: tuple[Stage, ...] = tuple(stages)
        self._by_id: dict[str, Stage] = {}
        for stage in self._stages:
            if not stage.id or not stage.id.strip():
                raise CatalogError("Stage id must not be blank")
            if stage.id in self._by_id:
                raise CatalogError(f"Duplicate stage id: {stage.id}")
            self._by_id[stage.id] = stage

    @staticmethod
    def from_file(path: str) -> "Catalog":
        """Load the catalog from a JSON list of {id, name, short} objects."""
        if not os.path.isfile(path):
            raise CatalogError(f"Stage file not found: {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Stage file is not valid JSON: {path}: {e}") from e
        if not isinstance(data, list):
            raise CatalogError(f"Stage file must contain a list: {path}")
        try:
            return Catalog(Stage.from_dict(d) for d in data)
        except (KeyError, TypeError, AttributeError) as e:
            raise CatalogError(f"Malformed stage entry in {path}: {e}") from e

    @property
    def stage_ids(self) -> list[str]:
        return [s.id for s in self._stages]

    def get(self, stage_id: str) -> Optional[Stage]:
        return self._by_id.get(stage_id)

    def to_list(self) -> list[dict]:
        return [s.to_dict() for s in self._stages]

    def __contains__(self, stage_id) -> bool:
        return isinstance(stage_id, str) and stage_id in self._by_id

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)
