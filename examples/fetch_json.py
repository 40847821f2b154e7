"""Fetch a JSON resource and decode it into a dataclass.

    pip install netcall

    python examples/fetch_json.py --url https://jsonplaceholder.typicode.com/todos --param userId=1
"""

import argparse
import logging
from dataclasses import dataclass

from netcall import HttpHelper


@dataclass
class Todo:
    userId: int
    id: int
    title: str
    completed: bool


def main(url: str, params: list[tuple[str, str]], timeout: float) -> None:
    def on_success(todos: list[Todo]) -> None:
        for todo in todos:
            mark = "x" if todo.completed else " "
            print(f"[{mark}] {todo.id}: {todo.title}")

    def on_failure(message: str) -> None:
        print(f"Request failed: {message}")

    with HttpHelper() as http:
        call = http.get(url, list[Todo], on_success, on_failure, params=params)
        if not call.wait(timeout):
            print(f"No response after {timeout}s")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="netcall GET example")
    parser.add_argument("--url", default="https://jsonplaceholder.typicode.com/todos")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        help="Query parameter as name=value (repeatable)",
    )
    parser.add_argument("--timeout", type=float, default=15.0)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    pairs = [tuple(p.split("=", 1)) for p in args.param]
    main(args.url, pairs, args.timeout)
