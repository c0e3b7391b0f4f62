"""Per-match striking state machine.

Phase flow:

    G1 (game 1, 3-4-1 striking):
        WINNER_BAN (3) -> LOSER_BAN (4) -> WINNER_PICK (1 of 2) -> DONE

    G2PLUS (games 2+):
        WINNER_BAN (3) -> LOSER_PICK (1 of the rest) -> DONE

Handlers validate first and only then mutate. They return an error instead
of raising, so a rejected action leaves the match exactly as it was.
"""

import time
from dataclasses import dataclass
from typing import Optional

from shared.constants import (
    Mode, Phase, ActionType, HistoryAction, ErrorCode,
    BAN_PHASES, PICK_PHASES, FORCED_TRANSITIONS,
    WINNER_BAN_QUOTA, FIRST_GAME_TOTAL_BANS,
)
from shared.models import ActionError, MatchView, StageEvent
from server.catalog import Catalog


@dataclass
class HistoryEntry:
    action: HistoryAction
    stage_id: Optional[str]
    prev_phase: Phase


def _now_ms() -> int:
    return int(time.time() * 1000)


def parse_mode(value) -> Optional[Mode]:
    """Return the Mode for a wire value, or None if it is not one."""
    try:
        return Mode(value)
    except (ValueError, TypeError):
        return None


class MatchState:
    """Authoritative striking state for one match."""

    def __init__(self, catalog: Catalog, mode: Mode = Mode.FIRST_GAME):
        self.catalog = catalog
        self.mode: Mode = mode
        self.phase: Phase = Phase.WINNER_BAN
        self.bans: list[str] = []
        self.pick: Optional[str] = None
        self.history: list[HistoryEntry] = []

    # --- Quotas ---

    def bans_remaining(self) -> int:
        if self.phase == Phase.WINNER_BAN:
            return max(0, WINNER_BAN_QUOTA - len(self.bans))
        if self.mode == Mode.FIRST_GAME and self.phase == Phase.LOSER_BAN:
            # 7 accumulated, not 4 counted from the start of the phase
            return max(0, FIRST_GAME_TOTAL_BANS - len(self.bans))
        return 0

    def picks_remaining(self) -> int:
        if self.phase in PICK_PHASES and self.pick is None:
            return 1
        return 0

    def available_stages(self) -> list[str]:
        return [sid for sid in self.catalog.stage_ids if sid not in self.bans]

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    # --- Transitions ---

    def _advance_phase(self):
        """Move out of a ban phase once its quota is met."""
        if self.mode == Mode.FIRST_GAME:
            if self.phase == Phase.WINNER_BAN and len(self.bans) >= WINNER_BAN_QUOTA:
                self.phase = Phase.LOSER_BAN
            elif self.phase == Phase.LOSER_BAN and len(self.bans) >= FIRST_GAME_TOTAL_BANS:
                self.phase = Phase.WINNER_PICK
        else:
            if self.phase == Phase.WINNER_BAN and len(self.bans) >= WINNER_BAN_QUOTA:
                self.phase = Phase.LOSER_PICK

    # --- Actions ---

    def ban(self, stage_id: str) -> tuple[Optional[ActionError], Optional[StageEvent]]:
        if stage_id not in self.catalog:
            return ActionError(ErrorCode.INVALID_ITEM, f"Invalid stage: {stage_id}"), None
        if stage_id in self.bans:
            return ActionError(ErrorCode.ALREADY_BANNED, f"Stage already banned: {stage_id}"), None
        if self.phase not in BAN_PHASES:
            return ActionError(ErrorCode.WRONG_PHASE,
                               f"Cannot ban in phase: {self.phase.value}"), None
        if self.bans_remaining() <= 0:
            return ActionError(ErrorCode.QUOTA_EXHAUSTED, "No bans remaining in this phase"), None

        self.history.append(HistoryEntry(HistoryAction.BAN, stage_id, self.phase))
        self.bans.append(stage_id)
        self._advance_phase()
        return None, StageEvent(ActionType.BAN, stage_id, _now_ms())

    def pick_stage(self, stage_id: str) -> tuple[Optional[ActionError], Optional[StageEvent]]:
        if stage_id not in self.catalog:
            return ActionError(ErrorCode.INVALID_ITEM, f"Invalid stage: {stage_id}"), None
        if stage_id in self.bans:
            return ActionError(ErrorCode.BANNED_ITEM, f"Cannot pick banned stage: {stage_id}"), None
        if self.phase not in PICK_PHASES:
            return ActionError(ErrorCode.WRONG_PHASE,
                               f"Cannot pick in phase: {self.phase.value}"), None
        if self.pick is not None:
            return ActionError(ErrorCode.ALREADY_PICKED, "Already picked"), None

        self.history.append(HistoryEntry(HistoryAction.PICK, stage_id, self.phase))
        self.pick = stage_id
        self.phase = Phase.DONE
        return None, StageEvent(ActionType.PICK, stage_id, _now_ms())

    def undo(self) -> Optional[ActionError]:
        if not self.history:
            return ActionError(ErrorCode.NOTHING_TO_UNDO, "Nothing to undo")

        entry = self.history.pop()
        if entry.action == HistoryAction.BAN:
            self.bans.remove(entry.stage_id)
        elif entry.action == HistoryAction.PICK:
            self.pick = None
        # FORCE_PHASE only reverts the phase
        self.phase = entry.prev_phase
        return None

    def force_next_phase(self) -> Optional[ActionError]:
        """Arbitration override: advance regardless of ban/pick counts."""
        next_phase = FORCED_TRANSITIONS.get(self.mode, {}).get(self.phase)
        if next_phase is None or next_phase == self.phase:
            return ActionError(ErrorCode.CANNOT_ADVANCE, "Cannot advance phase")

        self.history.append(HistoryEntry(HistoryAction.FORCE_PHASE, None, self.phase))
        self.phase = next_phase
        return None

    # --- Views ---

    def get_view(self, match_id: str) -> MatchView:
        return MatchView(
            match_id=match_id,
            mode=self.mode,
            phase=self.phase,
            bans=list(self.bans),
            pick=self.pick,
            available=self.available_stages(),
            bans_remaining=self.bans_remaining(),
            picks_remaining=self.picks_remaining(),
            can_undo=self.can_undo,
        )
