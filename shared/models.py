"""Serializable data classes for striking entities.

Used by both client and server for network communication. Wire keys are
camelCase to match what the browser controller and overlay already read.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
from shared.constants import Mode, Phase, ActionType, ErrorCode


@dataclass(frozen=True)
class Stage:
    id: str
    name: str
    short: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "short": self.short or self.name,
        }

    @staticmethod
    def from_dict(d: dict) -> Stage:
        return Stage(
            id=d["id"],
            name=d.get("name", d["id"]),
            short=d.get("short") or d.get("shortName") or "",
        )


@dataclass
class ActionError:
    """A rejected action: machine-readable code plus a message for the requester."""
    code: ErrorCode
    message: str

    def __str__(self):
        return self.message


@dataclass
class StageEvent:
    """Transient ban/pick notification, broadcast separately from the view."""
    type: ActionType
    stage_id: str
    timestamp: int  # ms since epoch

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "stageId": self.stage_id,
            "timestamp": self.timestamp,
        }

    @staticmethod
    def from_dict(d: dict) -> StageEvent:
        return StageEvent(
            type=ActionType(d["type"]),
            stage_id=d["stageId"],
            timestamp=d["timestamp"],
        )


@dataclass
class MatchView:
    """Derived match state sent to observers."""
    match_id: str
    mode: Mode
    phase: Phase
    bans: list[str] = field(default_factory=list)
    pick: Optional[str] = None
    available: list[str] = field(default_factory=list)
    bans_remaining: int = 0
    picks_remaining: int = 0
    can_undo: bool = False

    def to_dict(self) -> dict:
        return {
            "matchId": self.match_id,
            "mode": self.mode.value,
            "phase": self.phase.value,
            "bans": list(self.bans),
            "pick": self.pick,
            "available": list(self.available),
            "bansRemaining": self.bans_remaining,
            "picksRemaining": self.picks_remaining,
            "canUndo": self.can_undo,
        }

    @staticmethod
    def from_dict(d: dict) -> MatchView:
        return MatchView(
            match_id=d["matchId"],
            mode=Mode(d["mode"]),
            phase=Phase(d["phase"]),
            bans=list(d.get("bans", [])),
            pick=d.get("pick"),
            available=list(d.get("available", [])),
            bans_remaining=d.get("bansRemaining", 0),
            picks_remaining=d.get("picksRemaining", 0),
            can_undo=d.get("canUndo", False),
        )


@dataclass
class ActionResult:
    """Reply to the requester of an action."""
    type: str
    ok: bool
    error: Optional[str] = None
    code: Optional[ErrorCode] = None

    def to_dict(self) -> dict:
        d = {"type": self.type, "ok": self.ok}
        if not self.ok:
            d["error"] = self.error
            if self.code:
                d["code"] = self.code.value
        return d

    @staticmethod
    def from_dict(d: dict) -> ActionResult:
        code = d.get("code")
        return ActionResult(
            type=d.get("type", ""),
            ok=d["ok"],
            error=d.get("error"),
            code=ErrorCode(code) if code else None,
        )
