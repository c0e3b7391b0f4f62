"""WebSocket client for one match: background thread, message queue, reconnection."""

import asyncio
import threading
import queue
from typing import Optional
import websockets

from shared.constants import MessageType, ActionType, DEFAULT_MATCH_ID
from shared.protocol import create_message, parse_message

MAX_RETRY_DELAY = 30


class NetworkClient:
    """Follows one match over a WebSocket held on a background thread.

    Every (re)connect starts with a join for ``match_id``, so a restarted
    server or a dropped link still ends with a fresh state:update. Actions
    sent while offline are held and flushed right after that join.
    """

    def __init__(self, match_id: str = DEFAULT_MATCH_ID):
        self.match_id = match_id
        self.incoming: queue.Queue = queue.Queue()
        self._pending: queue.Queue = queue.Queue()
        self._ws = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._uri = ""
        self._should_stop = False

    def connect(self, host: str, port: int):
        self._uri = f"ws://{host}:{port}"
        self._should_stop = False
        self._thread = threading.Thread(target=self._run_loop, daemon=True)
        self._thread.start()

    def _run_loop(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._loop.run_until_complete(self._connect_and_listen())

    async def _connect_and_listen(self):
        retry_delay = 1
        while not self._should_stop:
            try:
                async with websockets.connect(self._uri) as ws:
                    retry_delay = 1
                    print(f"[net] Connected to {self._uri}, following match {self.match_id}")
                    await self._session(ws)
            except Exception as e:
                print(f"[net] Connection error: {e}")

            if not self._should_stop:
                await asyncio.sleep(retry_delay)
                retry_delay = min(retry_delay * 2, MAX_RETRY_DELAY)

    async def _flush_pending(self, ws):
        while True:
            try:
                await ws.send(self._pending.get_nowait())
            except queue.Empty:
                return

    async def _session(self, ws):
        await ws.send(create_message(MessageType.JOIN, {"matchId": self.match_id}))
        await self._flush_pending(ws)
        # Published only after the join so live sends never overtake it
        self._ws = ws
        try:
            await self._flush_pending(ws)
            async for message in ws:
                try:
                    self.incoming.put(parse_message(message))
                except (ValueError, KeyError) as e:
                    print(f"[net] Dropped frame from server: {e}")
        except websockets.exceptions.ConnectionClosed:
            print("[net] Connection closed")
        finally:
            self._ws = None

    def send(self, msg_type: MessageType, payload: dict = None):
        """Send a message to the server (called from the console thread).

        While offline the message waits in the pending queue until the next join.
        """
        message = create_message(msg_type, payload)
        if self._ws and self._loop:
            asyncio.run_coroutine_threadsafe(self._ws.send(message), self._loop)
        else:
            self._pending.put(message)

    def send_action(self, action_type: ActionType, **fields):
        """Send an action for this client's match; None-valued fields are left out."""
        payload = {"matchId": self.match_id, "type": action_type.value}
        payload.update({k: v for k, v in fields.items() if v is not None})
        self.send(MessageType.ACTION, payload)

    def poll(self, timeout: Optional[float] = None) -> Optional[tuple[MessageType, dict]]:
        """Next incoming message; non-blocking unless timeout is given."""
        try:
            if timeout is None:
                return self.incoming.get_nowait()
            return self.incoming.get(timeout=timeout)
        except queue.Empty:
            return None

    def poll_all(self) -> list[tuple[MessageType, dict]]:
        messages = []
        while (msg := self.poll()) is not None:
            messages.append(msg)
        return messages

    def disconnect(self):
        self._should_stop = True
        if self._ws and self._loop:
            asyncio.run_coroutine_threadsafe(self._ws.close(), self._loop)
