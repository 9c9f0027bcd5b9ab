# ==============================================
# CLI: Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Run the API server and talk to a running one from the shell.
#
# COMMANDS:
# ---------
# 1. Start the API server:
#    python -m csv_ingest.cli serve --port 3000
#
# 2. Upload a CSV file:
#    python -m csv_ingest.cli upload data/alumnos.csv
#
# 3. Show aggregate statistics:
#    python -m csv_ingest.cli stats
#
# 4. Show upload history:
#    python -m csv_ingest.cli history --limit 10
#
# 5. Delete every stored upload (for testing):
#    python -m csv_ingest.cli clear --confirm
#
# IMPLEMENTATION:
# ---------------
# - argparse for CLI parsing
# - uvicorn serves csv_ingest.api:create_app
# - requests talks to the API (base URL from API_URL or --url)
#
# ==============================================

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import requests
import uvicorn

from csv_ingest.config import get_config


def _url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}{path}"


def cmd_serve(args: argparse.Namespace) -> int:
    config = get_config()
    uvicorn.run(
        "csv_ingest.api:create_app",
        factory=True,
        host=args.host or config.server.host,
        port=args.port or config.server.port,
    )
    return 0


def cmd_upload(args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"✗ File not found: {path}")
        return 1

    with open(path, "rb") as f:
        response = requests.post(
            _url(args.url, "/api/upload"),
            files={"csvFile": (path.name, f, "text/csv")},
            timeout=args.timeout,
        )

    body = response.json()
    if response.ok and body.get("success"):
        print(f"✓ Upload {body['uploadId']} stored as '{body['tableName']}' ({body['mode']})")
        print(f"   - Rows processed: {body['rowsProcessed']}")
        print(f"   - Columns: {body['columnsCreated']} ({', '.join(body['columns'])})")
        return 0

    print(f"✗ Upload failed ({response.status_code}): {body.get('error', 'unknown error')}")
    return 1


def cmd_stats(args: argparse.Namespace) -> int:
    response = requests.get(_url(args.url, "/api/stats"), timeout=args.timeout)
    response.raise_for_status()
    stats = response.json()
    print("Upload Statistics:")
    print(f"   - Total files: {stats['totalFiles']}")
    print(f"   - Total records: {stats['totalRecords']}")
    print(f"   - Completed: {stats['completedUploads']}")
    print(f"   - Failed: {stats['failedUploads']}")
    print(f"   - Somatometria records: {stats['somatometriaRecords']}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    response = requests.get(
        _url(args.url, "/api/uploads"),
        params={"limit": args.limit},
        timeout=args.timeout,
    )
    response.raise_for_status()
    uploads = response.json()
    if not uploads:
        print("No uploads yet.")
        return 0

    for upload in uploads:
        marker = {"completed": "✓", "error": "✗"}.get(upload["upload_status"], "…")
        line = (f"{marker} #{upload['id']} {upload['original_filename']} → {upload['table_name']} "
                f"[{upload['upload_status']}] rows={upload['total_rows']} cols={upload['total_columns']}")
        if upload.get("error_message"):
            line += f" ({upload['error_message']})"
        print(line)
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    if not args.confirm:
        print("✗ Refusing to clear without --confirm")
        return 1
    response = requests.delete(_url(args.url, "/api/clear-database"), timeout=args.timeout)
    response.raise_for_status()
    print("✓ All uploads cleared")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="csv-ingest", description="CSV upload and schema inference service")
    parser.add_argument("--url", default=None, help="API base URL (default: API_URL or http://127.0.0.1:3000)")
    parser.add_argument("--timeout", type=float, default=60.0, help="HTTP timeout in seconds")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    upload = subparsers.add_parser("upload", help="Upload a CSV file")
    upload.add_argument("file")
    upload.set_defaults(func=cmd_upload)

    stats = subparsers.add_parser("stats", help="Show aggregate statistics")
    stats.set_defaults(func=cmd_stats)

    history = subparsers.add_parser("history", help="Show upload history")
    history.add_argument("--limit", type=int, default=50)
    history.set_defaults(func=cmd_history)

    clear = subparsers.add_parser("clear", help="Delete every stored upload")
    clear.add_argument("--confirm", action="store_true")
    clear.set_defaults(func=cmd_clear)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.url is None:
        args.url = get_config().api_url

    try:
        return args.func(args)
    except requests.RequestException as e:
        print(f"✗ API error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
