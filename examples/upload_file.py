"""Upload a file, gzip-compressed while it streams.

    python examples/upload_file.py --url https://httpbin.org/post --file ./report.csv
"""

import argparse
from typing import Any

from netcall import HttpHelper


def main(url: str, path: str, field: str | None, compress: bool) -> None:
    with HttpHelper() as http:
        call = http.upload(
            url,
            path,
            dict[str, Any],
            on_success=lambda body: print(f"Uploaded, server replied with keys: {sorted(body)}"),
            on_failure=lambda message: print(f"Upload failed: {message}"),
            field_name=field,
            compress=compress,
        )
        call.wait(60.0)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="netcall upload example")
    parser.add_argument("--url", default="https://httpbin.org/post")
    parser.add_argument("--file", required=True)
    parser.add_argument("--field", default=None, help="Send as multipart under this field name")
    parser.add_argument("--no-gzip", action="store_true")
    args = parser.parse_args()

    main(args.url, args.file, args.field, not args.no_gzip)
