"""Striking constants shared between client and server."""

from enum import Enum

# Server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_MATCH_ID = "default"
DEFAULT_STAGES_FILE = "data/stages.json"

# Ban quotas
WINNER_BAN_QUOTA = 3        # both modes
FIRST_GAME_TOTAL_BANS = 7   # 3 winner + 4 loser, accumulated


class Mode(str, Enum):
    FIRST_GAME = "G1"       # 3-4-1 striking
    LATER_GAME = "G2PLUS"   # winner bans 3, loser picks


class Phase(str, Enum):
    WINNER_BAN = "WINNER_BAN"
    LOSER_BAN = "LOSER_BAN"
    WINNER_PICK = "WINNER_PICK"
    LOSER_PICK = "LOSER_PICK"
    DONE = "DONE"


BAN_PHASES = (Phase.WINNER_BAN, Phase.LOSER_BAN)
PICK_PHASES = (Phase.WINNER_PICK, Phase.LOSER_PICK)

# Arbitration override: the phase FORCE_NEXT_PHASE moves to.
# DONE maps to itself, which means "no successor".
FORCED_TRANSITIONS: dict[Mode, dict[Phase, Phase]] = {
    Mode.FIRST_GAME: {
        Phase.WINNER_BAN: Phase.LOSER_BAN,
        Phase.LOSER_BAN: Phase.WINNER_PICK,
        Phase.WINNER_PICK: Phase.DONE,
        Phase.DONE: Phase.DONE,
    },
    Mode.LATER_GAME: {
        Phase.WINNER_BAN: Phase.LOSER_PICK,
        Phase.LOSER_PICK: Phase.DONE,
        Phase.DONE: Phase.DONE,
    },
}


class ActionType(str, Enum):
    BAN = "BAN"
    PICK = "PICK"
    UNDO = "UNDO"
    RESET = "RESET"
    SET_MODE = "SET_MODE"
    FORCE_NEXT_PHASE = "FORCE_NEXT_PHASE"


class HistoryAction(str, Enum):
    BAN = "BAN"
    PICK = "PICK"
    FORCE_PHASE = "FORCE_PHASE"


class ErrorCode(str, Enum):
    INVALID_ITEM = "INVALID_ITEM"
    ALREADY_BANNED = "ALREADY_BANNED"
    BANNED_ITEM = "BANNED_ITEM"
    ALREADY_PICKED = "ALREADY_PICKED"
    WRONG_PHASE = "WRONG_PHASE"
    QUOTA_EXHAUSTED = "QUOTA_EXHAUSTED"
    NOTHING_TO_UNDO = "NOTHING_TO_UNDO"
    INVALID_MODE = "INVALID_MODE"
    CANNOT_ADVANCE = "CANNOT_ADVANCE"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"


class MessageType(str, Enum):
    # Client -> Server
    JOIN = "join"
    ACTION = "action"
    # Server -> Client
    ACTION_RESULT = "action:result"
    STATE_UPDATE = "state:update"
    EVENT_PUSH = "event:push"
    ERROR = "error"
