"""Action routing: resolve the match, apply the action, decide what to broadcast."""

from dataclasses import dataclass
from typing import Optional

from shared.constants import ActionType, ErrorCode, DEFAULT_MATCH_ID
from shared.models import ActionError, ActionResult, MatchView, StageEvent
from server.catalog import Catalog
from server.match_state import MatchState, parse_mode
from server.match_store import MatchStore


def resolve_match_id(match_id: Optional[str]) -> str:
    if not match_id or not isinstance(match_id, str):
        return DEFAULT_MATCH_ID
    return match_id


@dataclass
class DispatchOutcome:
    """Result of one action.

    view and event are what observers of the match should receive; both are
    None when the action was rejected.
    """
    match_id: str
    action_type: str
    error: Optional[ActionError] = None
    event: Optional[StageEvent] = None
    view: Optional[MatchView] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_result(self) -> ActionResult:
        if self.error:
            return ActionResult(self.action_type, False, self.error.message, self.error.code)
        return ActionResult(self.action_type, True)


class ActionDispatcher:
    def __init__(self, store: MatchStore, catalog: Catalog):
        self.store = store
        self.catalog = catalog

    def view(self, match_id: Optional[str] = None) -> MatchView:
        match_id = resolve_match_id(match_id)
        return self.store.get_or_create(match_id).get_view(match_id)

    def dispatch(self, match_id: Optional[str], action_type, payload: dict = None) -> DispatchOutcome:
        payload = payload or {}
        match_id = resolve_match_id(match_id)
        type_name = action_type.value if isinstance(action_type, ActionType) else str(action_type)
        state = self.store.get_or_create(match_id)

        error, event = self._apply(match_id, state, type_name, payload)
        outcome = DispatchOutcome(match_id, type_name, error=error, event=event)
        if outcome.ok:
            outcome.view = self.view(match_id)

        arg = payload.get("stageId") or payload.get("mode")
        detail = " ".join(filter(None, [type_name, arg if isinstance(arg, str) else None]))
        print(f"[match] {match_id}: {detail} -> {'OK' if outcome.ok else error.message}")
        return outcome

    def _apply(self, match_id: str, state: MatchState, type_name: str,
               payload: dict) -> tuple[Optional[ActionError], Optional[StageEvent]]:
        try:
            action = ActionType(type_name)
        except ValueError:
            return ActionError(ErrorCode.UNKNOWN_ACTION, f"Unknown action: {type_name}"), None

        if action == ActionType.BAN:
            return state.ban(payload.get("stageId"))
        if action == ActionType.PICK:
            return state.pick_stage(payload.get("stageId"))
        if action == ActionType.UNDO:
            return state.undo(), None
        if action == ActionType.FORCE_NEXT_PHASE:
            return state.force_next_phase(), None
        if action == ActionType.RESET:
            print(f"[match] {match_id}: reset, keeping mode {state.mode.value}")
            self.store.replace(match_id, MatchState(self.catalog, state.mode))
            return None, None
        # SET_MODE
        requested = payload.get("mode")
        mode = parse_mode(requested)
        if mode is None:
            return ActionError(ErrorCode.INVALID_MODE, f"Invalid mode: {requested}"), None
        self.store.replace(match_id, MatchState(self.catalog, mode))
        return None, None
