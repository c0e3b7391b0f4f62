"""Tests for console command parsing and rendering."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from shared.constants import MessageType, ActionType, Mode, Phase
from shared.models import MatchView
from client.console import parse_command, format_view, format_message, CommandError, ConsoleApp


class FakeClient:
    def __init__(self, messages=()):
        self.messages = list(messages)
        self.actions = []
        self.disconnected = False

    def send_action(self, action_type, **fields):
        self.actions.append((action_type, fields))

    def poll(self, timeout=None):
        return self.messages.pop(0) if self.messages else None

    def poll_all(self):
        msgs, self.messages = self.messages, []
        return msgs

    def disconnect(self):
        self.disconnected = True


class TestParseCommand:
    def test_ban(self):
        assert parse_command("ban fd") == (ActionType.BAN, {"stageId": "fd"})

    def test_pick_keeps_stage_case(self):
        assert parse_command("  PICK Kalos ") == (ActionType.PICK, {"stageId": "Kalos"})

    def test_simple_commands(self):
        assert parse_command("undo") == (ActionType.UNDO, {})
        assert parse_command("reset") == (ActionType.RESET, {})
        assert parse_command("next") == (ActionType.FORCE_NEXT_PHASE, {})

    def test_mode_aliases(self):
        assert parse_command("mode g1") == (ActionType.SET_MODE, {"mode": "G1"})
        assert parse_command("mode G2") == (ActionType.SET_MODE, {"mode": "G2PLUS"})

    def test_unknown_mode_passes_through(self):
        assert parse_command("mode g9") == (ActionType.SET_MODE, {"mode": "g9"})

    def test_errors(self):
        for line in ("", "ban", "pick a b", "undo now", "dance", "mode"):
            with pytest.raises(CommandError):
                parse_command(line)


class TestFormatting:
    def _view(self, **kw):
        defaults = dict(match_id="TEST", mode=Mode.FIRST_GAME, phase=Phase.LOSER_BAN,
                        bans=["fd", "ps2"], available=["kalos"], bans_remaining=5)
        defaults.update(kw)
        return MatchView(**defaults)

    def test_format_view(self):
        text = format_view(self._view())
        assert text.splitlines()[0] == "[TEST] G1 - Loser bans"
        assert "bans remaining: 5" in text
        assert "fd, ps2" in text

    def test_format_view_done(self):
        text = format_view(self._view(phase=Phase.DONE, bans_remaining=0, pick="kalos"))
        assert "Stage selected" in text
        assert "picked:    kalos" in text

    def test_event(self):
        line = format_message(MessageType.EVENT_PUSH,
                              {"type": "PICK", "stageId": "fd", "timestamp": 1})
        assert line == ">>> PICKED: fd"

    def test_rejected_result(self):
        line = format_message(MessageType.ACTION_RESULT,
                              {"type": "UNDO", "ok": False, "error": "Nothing to undo"})
        assert line == "!! UNDO rejected: Nothing to undo"

    def test_ok_result_is_silent(self):
        assert format_message(MessageType.ACTION_RESULT, {"type": "BAN", "ok": True}) is None

    def test_overlay_ignores_results_and_errors(self):
        payload = {"type": "UNDO", "ok": False, "error": "Nothing to undo"}
        assert format_message(MessageType.ACTION_RESULT, payload, role="overlay") is None
        assert format_message(MessageType.ERROR, {"message": "x"}, role="overlay") is None


class TestConsoleApp:
    def test_control_session(self, monkeypatch, capsys):
        state = MatchView("m", Mode.FIRST_GAME, Phase.WINNER_BAN, bans=["fd"],
                          available=["ps2"], bans_remaining=2).to_dict()
        client = FakeClient()
        lines = iter(["ban fd", "dance", "quit"])

        def fake_input(prompt):
            client.messages = [
                (MessageType.ACTION_RESULT, {"type": "BAN", "ok": True}),
                (MessageType.STATE_UPDATE, state),
            ]
            return next(lines)

        monkeypatch.setattr("builtins.input", fake_input)
        app = ConsoleApp(client)
        app.run()

        assert client.actions == [(ActionType.BAN, {"stageId": "fd"})]
        assert client.disconnected
        assert app.last_view.bans == ["fd"]
        assert "Unknown command: dance" in capsys.readouterr().out


class LateClient(FakeClient):
    """Messages only show up to a blocking poll, as if each arrives while waiting."""

    def __init__(self, messages=()):
        super().__init__(messages)
        self.timeouts = []

    def poll(self, timeout=None):
        if timeout is None:
            return None
        self.timeouts.append(timeout)
        return self.messages.pop(0) if self.messages else None

    def poll_all(self):
        return []


class TestWaitForResult:
    def _state(self, bans):
        return MatchView("m", Mode.FIRST_GAME, Phase.WINNER_BAN, bans=bans,
                         available=["ps2"], bans_remaining=3 - len(bans)).to_dict()

    def test_ok_result_waits_for_state(self):
        client = LateClient([
            (MessageType.ACTION_RESULT, {"type": "BAN", "ok": True}),
            (MessageType.STATE_UPDATE, self._state(["fd"])),
            (MessageType.EVENT_PUSH, {"type": "BAN", "stageId": "fd", "timestamp": 1}),
        ])
        app = ConsoleApp(client)
        app._wait_for_result()
        assert app.last_view.bans == ["fd"]
        assert len(client.timeouts) == 2
        assert all(0 < t <= 2.0 for t in client.timeouts)
        # The event is left for the next prompt
        assert len(client.messages) == 1

    def test_unrelated_state_before_result_does_not_end_wait(self):
        client = LateClient([
            (MessageType.STATE_UPDATE, self._state([])),
            (MessageType.ACTION_RESULT, {"type": "BAN", "ok": True}),
            (MessageType.STATE_UPDATE, self._state(["fd"])),
        ])
        app = ConsoleApp(client)
        app._wait_for_result()
        assert app.last_view.bans == ["fd"]
        assert client.messages == []

    def test_rejected_result_returns_at_once(self, capsys):
        client = LateClient([
            (MessageType.ACTION_RESULT, {"type": "PICK", "ok": False, "error": "Cannot pick"}),
            (MessageType.STATE_UPDATE, self._state([])),
        ])
        app = ConsoleApp(client)
        app._wait_for_result()
        assert "!! PICK rejected: Cannot pick" in capsys.readouterr().out
        assert app.last_view is None
        assert len(client.messages) == 1

    def test_no_reply(self, capsys):
        app = ConsoleApp(LateClient())
        app._wait_for_result()
        assert "No reply from server yet" in capsys.readouterr().out

    def test_ok_result_without_state_is_quiet(self, capsys):
        client = LateClient([(MessageType.ACTION_RESULT, {"type": "UNDO", "ok": True})])
        ConsoleApp(client)._wait_for_result()
        assert "No reply" not in capsys.readouterr().out
