"""In-memory match storage: match id -> MatchState, created on first reference."""

from server.catalog import Catalog
from server.match_state import MatchState


class MatchStore:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self._matches: dict[str, MatchState] = {}

    def get_or_create(self, match_id: str) -> MatchState:
        state = self._matches.get(match_id)
        if state is None:
            state = MatchState(self.catalog)
            self._matches[match_id] = state
        return state

    def replace(self, match_id: str, state: MatchState):
        self._matches[match_id] = state

    def match_ids(self) -> list[str]:
        return list(self._matches)

    def __contains__(self, match_id) -> bool:
        return match_id in self._matches

    def __len__(self) -> int:
        return len(self._matches)
