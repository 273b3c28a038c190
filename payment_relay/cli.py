"""
Command-line interface for Payment Relay.

``serve`` runs the Slack-facing web server.  The remaining subcommands are
operator conveniences: create the schema, seed stores and vendors, ask a
running server to reload its store-channel map, and preview how the parser
reads a message without touching Slack or the database.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, Sequence

import requests
from sqlalchemy.orm import Session

from .config import Settings
from .database import init_db, make_engine, make_session_factory
from .errors import ConfigError
from .logging_setup import configure_logging
from .models import Store, Vendor
from .parser import parse


def _session(database_url: Optional[str]) -> Session:
    engine = make_engine(database_url)
    init_db(engine)
    return make_session_factory(engine)()


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "payment_relay.slack_app:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_config=None,
    )
    return 0


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> int:
    init_db(make_engine(args.database_url))
    print("Schema ready.")
    return 0


def cmd_preview(args: argparse.Namespace, settings: Settings) -> int:
    text = " ".join(args.text)
    parsed = parse(text)
    if parsed is None:
        print("not a payment request")
        return 1
    result = parsed.to_dict()
    result["meets_minimum"] = parsed.amount >= settings.min_payment_amount
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


def cmd_add_store(args: argparse.Namespace, settings: Settings) -> int:
    with _session(args.database_url) as session, session.begin():
        store = Store(name=args.name, channel_id=args.channel_id)
        session.add(store)
    print(f"Store {store.id}: {store.name} -> {store.channel_id}")
    return 0


def cmd_add_vendor(args: argparse.Namespace, settings: Settings) -> int:
    with _session(args.database_url) as session, session.begin():
        vendor = Vendor(name=args.name)
        session.add(vendor)
    print(f"Vendor {vendor.id}: {vendor.name}")
    return 0


def cmd_refresh_channels(args: argparse.Namespace, settings: Settings) -> int:
    settings.require("admin_token")
    url = args.url.rstrip("/") + "/admin/channels/refresh"
    try:
        response = requests.post(
            url, headers={"Authorization": f"Bearer {settings.admin_token}"}, timeout=10
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        print(f"error: channel refresh failed: {exc}", file=sys.stderr)
        return 1
    result = response.json()
    state = "reloaded" if result.get("refreshed") else "kept previous map"
    print(f"Channel map {state} (version {result.get('version')})")
    return 0


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="payment-relay", description="Slack payment request relay")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the Slack webhook server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    init = sub.add_parser("init-db", help="Create missing tables")
    init.set_defaults(func=cmd_init_db)

    preview = sub.add_parser("preview", help="Show how a message would be parsed")
    preview.add_argument("text", nargs="+")
    preview.set_defaults(func=cmd_preview)

    add_store = sub.add_parser("add-store", help="Register a store and its Slack channel")
    add_store.add_argument("name")
    add_store.add_argument("channel_id")
    add_store.set_defaults(func=cmd_add_store)

    add_vendor = sub.add_parser("add-vendor", help="Register a vendor")
    add_vendor.add_argument("name")
    add_vendor.set_defaults(func=cmd_add_vendor)

    refresh = sub.add_parser("refresh-channels", help="Reload the store-channel map of a running server")
    refresh.add_argument(
        "--url", default=f"http://localhost:{settings.port}", help="Base URL of the running server"
    )
    refresh.set_defaults(func=cmd_refresh_channels)

    for name in ("init-db", "add-store", "add-vendor"):
        sub.choices[name].add_argument(
            "--database-url", default=settings.database_url, help="SQLAlchemy database URL"
        )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    settings = Settings.from_env()
    configure_logging("payment-relay", settings.log_level, settings.log_file)
    args = build_parser(settings).parse_args(argv)
    try:
        return args.func(args, settings)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
