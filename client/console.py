"""Terminal controller and overlay for a striking match.

The controller reads commands from stdin (see HELP_TEXT). The overlay only
prints what the server pushes: state updates and ban/pick events.
"""

import time
from typing import Optional

from shared.constants import MessageType, ActionType, Mode, Phase
from shared.models import MatchView, StageEvent, ActionResult

HELP_TEXT = """Commands:
    ban <stage>     pick <stage>     undo     reset
    mode g1|g2      next (force the next phase)
    state           help             quit"""

MODE_ALIASES = {
    "g1": Mode.FIRST_GAME,
    "1": Mode.FIRST_GAME,
    "g2": Mode.LATER_GAME,
    "g2plus": Mode.LATER_GAME,
    "2": Mode.LATER_GAME,
}

PHASE_LABELS = {
    Phase.WINNER_BAN: "Winner bans",
    Phase.LOSER_BAN: "Loser bans",
    Phase.WINNER_PICK: "Winner picks",
    Phase.LOSER_PICK: "Loser picks",
    Phase.DONE: "Stage selected",
}

RESULT_WAIT_SECONDS = 2.0


class CommandError(ValueError):
    pass


def parse_command(line: str) -> tuple[ActionType, dict]:
    """Turn a controller command into (action type, extra payload fields)."""
    parts = line.strip().split()
    if not parts:
        raise CommandError("Empty command")
    word, args = parts[0].lower(), parts[1:]

    if word in ("ban", "pick"):
        if len(args) != 1:
            raise CommandError(f"Usage: {word} <stage>")
        action = ActionType.BAN if word == "ban" else ActionType.PICK
        return action, {"stageId": args[0]}
    if word == "mode":
        if len(args) != 1:
            raise CommandError("Usage: mode g1|g2")
        mode = MODE_ALIASES.get(args[0].lower())
        # Unknown modes go through as typed; the server rejects them
        return ActionType.SET_MODE, {"mode": mode.value if mode else args[0]}
    if args:
        raise CommandError(f"'{word}' takes no arguments")
    if word == "undo":
        return ActionType.UNDO, {}
    if word == "reset":
        return ActionType.RESET, {}
    if word in ("next", "force"):
        return ActionType.FORCE_NEXT_PHASE, {}
    raise CommandError(f"Unknown command: {word}")


def format_view(view: MatchView) -> str:
    label = PHASE_LABELS.get(view.phase, view.phase.value)
    lines = [f"[{view.match_id}] {view.mode.value} - {label}"]
    if view.bans_remaining:
        lines.append(f"  bans remaining: {view.bans_remaining}")
    if view.picks_remaining:
        lines.append("  pick remaining")
    lines.append(f"  banned:    {', '.join(view.bans) or '-'}")
    lines.append(f"  available: {', '.join(view.available) or '-'}")
    if view.pick:
        lines.append(f"  picked:    {view.pick}")
    return "\n".join(lines)


def format_message(msg_type: MessageType, payload: dict, role: str = "control") -> Optional[str]:
    """Render one server message for the terminal, or None if the role ignores it."""
    if msg_type == MessageType.STATE_UPDATE:
        return format_view(MatchView.from_dict(payload))
    if msg_type == MessageType.EVENT_PUSH:
        event = StageEvent.from_dict(payload)
        verb = "BANNED" if event.type == ActionType.BAN else "PICKED"
        return f">>> {verb}: {event.stage_id}"
    if role == "overlay":
        return None
    if msg_type == MessageType.ACTION_RESULT:
        result = ActionResult.from_dict(payload)
        if result.ok:
            return None
        return f"!! {result.type} rejected: {result.error}"
    if msg_type == MessageType.ERROR:
        return f"!! {payload.get('message', 'error')}"
    return None


class ConsoleApp:
    def __init__(self, client, role: str = "control"):
        self.client = client
        self.role = role
        self.last_view: Optional[MatchView] = None

    def _show(self, msg_type: MessageType, payload: dict):
        if msg_type == MessageType.STATE_UPDATE:
            self.last_view = MatchView.from_dict(payload)
        text = format_message(msg_type, payload, self.role)
        if text:
            print(text)

    def _drain(self):
        for msg_type, payload in self.client.poll_all():
            self._show(msg_type, payload)

    def _wait_for_result(self):
        """Print everything up to our result and, when it succeeded, the state it produced."""
        deadline = time.monotonic() + RESULT_WAIT_SECONDS
        accepted = False
        while True:
            remaining = deadline - time.monotonic()
            msg = self.client.poll(timeout=remaining) if remaining > 0 else None
            if msg is None:
                if not accepted:
                    print("[console] No reply from server yet")
                return
            msg_type, payload = msg
            self._show(msg_type, payload)
            if msg_type == MessageType.ACTION_RESULT:
                if not payload.get("ok"):
                    return
                accepted = True
            elif accepted and msg_type == MessageType.STATE_UPDATE:
                # Prints the event:push too when it is already queued
                self._drain()
                return

    def run_overlay(self):
        while True:
            msg = self.client.poll(timeout=0.5)
            if msg:
                self._show(*msg)

    def run_control(self):
        print(HELP_TEXT)
        while True:
            self._drain()
            try:
                line = input("> ")
            except EOFError:
                return
            word = line.strip().lower()
            if not word:
                continue
            if word in ("quit", "exit"):
                return
            if word == "help":
                print(HELP_TEXT)
                continue
            if word == "state":
                if self.last_view:
                    print(format_view(self.last_view))
                else:
                    print("[console] No state received yet")
                continue
            try:
                action, fields = parse_command(line)
            except CommandError as e:
                print(f"[console] {e}")
                continue
            self.client.send_action(action, **fields)
            self._wait_for_result()

    def run(self):
        try:
            if self.role == "overlay":
                self.run_overlay()
            else:
                self.run_control()
        except KeyboardInterrupt:
            pass
        finally:
            self.client.disconnect()
