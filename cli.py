from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Local Service Orchestrator CLI")
    p.add_argument("--api", default="http://127.0.0.1:8765", help="Control API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("status", help="Show service status")

    s_start = sub.add_parser("start", help="Ensure the service container is running and healthy")
    s_start.add_argument("--no-wait", action="store_true", help="Return immediately; poll `status` for progress")

    sub.add_parser("stop", help="Stop and remove the service container")
    sub.add_parser("restart", help="Replace the service container")
    sub.add_parser("url", help="Print the service URL")
    sub.add_parser("data-dir", help="Print the host data directory")

    s_ev = sub.add_parser("events", help="Show orchestration events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "status":
        r = requests.get(f"{base}/service/status", timeout=10)
    elif args.cmd == "start":
        # Image pulls and health waits can take minutes.
        r = requests.post(f"{base}/service/start", params={"wait": str(not args.no_wait).lower()}, timeout=900)
    elif args.cmd == "stop":
        r = requests.post(f"{base}/service/stop", timeout=300)
    elif args.cmd == "restart":
        r = requests.post(f"{base}/service/restart", timeout=900)
    elif args.cmd == "url":
        r = requests.get(f"{base}/service/url", timeout=10)
    elif args.cmd == "data-dir":
        r = requests.get(f"{base}/service/data-dir", timeout=10)
    elif args.cmd == "events":
        r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1
    else:
        return 2

    body = r.json()
    _print(body)
    return 0 if r.ok and body.get("success") else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
