"""WebSocket server: match rooms, action handling, broadcast, HTTP queries."""

import asyncio
import json
import socket
import traceback
import uuid
from http import HTTPStatus
from typing import Optional
from urllib.parse import urlsplit, parse_qs

import websockets
from websockets.asyncio.server import serve, ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from shared.constants import MessageType, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_STAGES_FILE
from shared.protocol import create_message, parse_message
from server.catalog import Catalog
from server.dispatcher import ActionDispatcher, resolve_match_id
from server.match_store import MatchStore


class ObserverSession:
    def __init__(self, ws: ServerConnection, observer_id: str):
        self.ws = ws
        self.observer_id = observer_id
        self.match_id: Optional[str] = None
        self.connected = True

    async def send(self, message: str):
        if not self.connected:
            return
        try:
            await self.ws.send(message)
        except Exception:
            self.connected = False


class MatchRoom:
    """Everyone currently watching one match (controllers and overlays alike)."""

    def __init__(self, match_id: str):
        self.match_id = match_id
        self.observers: dict[str, ObserverSession] = {}

    def add_observer(self, session: ObserverSession):
        self.observers[session.observer_id] = session

    def remove_observer(self, observer_id: str):
        self.observers.pop(observer_id, None)

    def connected_observers(self) -> list[ObserverSession]:
        return [s for s in self.observers.values() if s.connected]

    async def broadcast(self, message: str):
        for session in self.connected_observers():
            await session.send(message)


def get_lan_ip() -> str:
    """Best-effort LAN IPv4 address of this machine, for the startup banner."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            # UDP connect sends nothing; it only selects the outbound interface
            s.connect(("10.255.255.255", 1))
            address = s.getsockname()[0]
    except OSError:
        return "localhost"
    if address.startswith("127.") or address == "0.0.0.0":
        return "localhost"
    return address


def _http_response(status: HTTPStatus, body: bytes,
                   content_type: str = "text/plain; charset=utf-8") -> Response:
    headers = Headers([
        ("Content-Type", content_type),
        ("Content-Length", str(len(body))),
        ("Access-Control-Allow-Origin", "*"),
        ("Connection", "close"),
    ])
    return Response(status.value, status.phrase, headers, body)


def _json_response(data) -> Response:
    return _http_response(HTTPStatus.OK, json.dumps(data).encode("utf-8"),
                          "application/json")


class StageServer:
    def __init__(self, catalog: Catalog, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port
        self.catalog = catalog
        self.store = MatchStore(catalog)
        self.dispatcher = ActionDispatcher(self.store, catalog)
        self.rooms: dict[str, MatchRoom] = {}
        # One action (or join) at a time, so every observer sees updates in mutation order
        self._action_lock = asyncio.Lock()

    async def handle_connection(self, ws: ServerConnection):
        session = ObserverSession(ws, str(uuid.uuid4())[:8])
        print(f"[server] Client connected: {session.observer_id} from {ws.remote_address}")
        try:
            async for raw_message in ws:
                try:
                    msg_type, payload = parse_message(raw_message)
                except Exception as e:
                    print(f"[server] Parse error from {session.observer_id}: {e}")
                    await session.send(create_message(MessageType.ERROR,
                        {"message": "Invalid message format"}))
                    continue

                try:
                    if msg_type == MessageType.JOIN:
                        await self._handle_join(session, payload)
                    elif msg_type == MessageType.ACTION:
                        await self._handle_action(session, payload)
                    else:
                        await session.send(create_message(MessageType.ERROR,
                            {"message": f"Unexpected message type: {msg_type.value}"}))
                except Exception as e:
                    print(f"[server] Error handling {msg_type.value} from {session.observer_id}: {e}")
                    traceback.print_exc()
                    await session.send(create_message(MessageType.ERROR,
                        {"message": "Server error processing action"}))
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            session.connected = False
            self._leave_room(session)
            print(f"[server] Client disconnected: {session.observer_id}")

    def _leave_room(self, session: ObserverSession):
        if session.match_id is None:
            return
        room = self.rooms.get(session.match_id)
        if room:
            room.remove_observer(session.observer_id)
            if not room.observers:
                del self.rooms[session.match_id]
        session.match_id = None

    async def _handle_join(self, session: ObserverSession, payload: dict):
        match_id = resolve_match_id(payload.get("matchId"))
        async with self._action_lock:
            if session.match_id != match_id:
                self._leave_room(session)
                room = self.rooms.get(match_id)
                if room is None:
                    room = MatchRoom(match_id)
                    self.rooms[match_id] = room
                room.add_observer(session)
                session.match_id = match_id
            print(f"[server] {session.observer_id} joined match: {match_id}")
            view = self.dispatcher.view(match_id)
            await session.send(create_message(MessageType.STATE_UPDATE, view.to_dict()))

    async def _handle_action(self, session: ObserverSession, payload: dict):
        match_id = payload.get("matchId") or session.match_id
        action_type = payload.get("type") or ""
        async with self._action_lock:
            outcome = self.dispatcher.dispatch(match_id, action_type, payload)
            await session.send(create_message(MessageType.ACTION_RESULT,
                                              outcome.to_result().to_dict()))
            if not outcome.ok:
                return
            room = self.rooms.get(outcome.match_id)
            if room is None:
                return
            await room.broadcast(create_message(MessageType.STATE_UPDATE, outcome.view.to_dict()))
            if outcome.event:
                await room.broadcast(create_message(MessageType.EVENT_PUSH, outcome.event.to_dict()))

    def process_request(self, connection: ServerConnection, request: Request) -> Optional[Response]:
        """Answer plain HTTP queries; let WebSocket upgrades through."""
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return None

        url = urlsplit(request.path)
        if url.path == "/health":
            return _http_response(HTTPStatus.OK, b"OK")
        if url.path == "/api/stages":
            return _json_response(self.catalog.to_list())
        if url.path == "/api/state":
            match_id = parse_qs(url.query).get("match", [None])[0]
            view = self.dispatcher.view(match_id)
            print(f"[server] State query for match: {view.match_id}")
            return _json_response(view.to_dict())
        return _http_response(HTTPStatus.NOT_FOUND, b"Not Found")

    async def run(self):
        async with serve(self.handle_connection, self.host, self.port,
                         process_request=self.process_request):
            lan_ip = get_lan_ip()
            print(f"Stage server running on ws://{self.host}:{self.port}")
            print(f"   Local:   http://localhost:{self.port}")
            print(f"   LAN:     http://{lan_ip}:{self.port}")
            print(f"   Stages:  http://localhost:{self.port}/api/stages ({len(self.catalog)} loaded)")
            print(f"   Health:  http://localhost:{self.port}/health")
            print(f"   Control: python main.py control {lan_ip} {self.port} <match>")
            await asyncio.Future()  # run forever


async def main(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
               stages_file: str = DEFAULT_STAGES_FILE):
    catalog = Catalog.from_file(stages_file)
    server = StageServer(catalog, host, port)
    await server.run()
