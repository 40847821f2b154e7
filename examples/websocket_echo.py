"""Open a WebSocket, send a few lines, print everything that comes back.

    python examples/websocket_echo.py --url wss://echo.websocket.org --message hello --message bye
"""

import argparse
import signal
import threading

from netcall import HttpHelper, WebSocketListener


def main(url: str, messages: list[str]) -> None:
    done = threading.Event()

    def on_open(session):
        print(f"Connected to {url}")
        for message in messages:
            session.send(message)

    def on_closed(code, reason):
        print(f"Closed: {code} {reason}")
        done.set()

    def on_failure(message):
        print(f"Failure: {message}")
        done.set()

    listener = WebSocketListener(
        on_open=on_open,
        on_message=lambda text: print(f"<- {text}"),
        on_closing=lambda code, reason: print(f"Server closing: {code} {reason}"),
        on_closed=on_closed,
        on_failure=on_failure,
    )

    with HttpHelper() as http:
        session = http.websocket(url, listener)
        signal.signal(signal.SIGINT, lambda *_: session.close())
        print("Listening... (Ctrl+C to close)\n")
        while not done.wait(0.5):
            pass


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="netcall WebSocket example")
    parser.add_argument("--url", default="wss://echo.websocket.org")
    parser.add_argument("--message", action="append", default=[])
    args = parser.parse_args()

    main(args.url, args.message or ["hello"])
