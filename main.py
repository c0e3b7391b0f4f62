"""Entry point - launches the server or a console client via CLI args.

Usage:
    python main.py                              # Launch server on $HOST:$PORT (0.0.0.0:3000)
    python main.py server 0.0.0.0 9000          # Launch server on custom host/port
    python main.py control host port [match]    # Console controller for a match
    python main.py overlay host port [match]    # Console overlay for a match

Environment:
    HOST, PORT       server bind address when not given on the command line
    STAGES_FILE      stage catalog (default: data/stages.json next to this file)
"""

import os
import sys
import asyncio

from shared.constants import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_MATCH_ID, DEFAULT_STAGES_FILE


def _stages_file() -> str:
    path = os.environ.get("STAGES_FILE")
    if path:
        return path
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), DEFAULT_STAGES_FILE)


def main():
    args = sys.argv[1:]

    if not args or args[0] == "server":
        from server.server import main as server_main
        from server.catalog import CatalogError
        host = args[1] if len(args) > 1 else os.environ.get("HOST", DEFAULT_HOST)
        port = int(args[2]) if len(args) > 2 else int(os.environ.get("PORT", DEFAULT_PORT))
        print(f"Starting stage server on {host}:{port}")
        try:
            asyncio.run(server_main(host, port, _stages_file()))
        except CatalogError as e:
            print(f"[server] {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            pass
    elif args[0] in ("control", "overlay"):
        from client.network import NetworkClient
        from client.console import ConsoleApp
        host = args[1] if len(args) > 1 else "localhost"
        port = int(args[2]) if len(args) > 2 else DEFAULT_PORT
        match_id = args[3] if len(args) > 3 else DEFAULT_MATCH_ID
        client = NetworkClient(match_id)
        client.connect(host, port)
        ConsoleApp(client, role=args[0]).run()
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
