import argparse
import json
import os
import sys
import uuid as _uuid
from pathlib import Path

import logging
from config.session import load_session
from config.settings import get_settings
from db import schema
from db.connection import get_connection
from db.repos.kv_repo import KeyValueRepo
from services.errors import EnrichmentError
from services.reporting import print_summary
from services.workspace import ContactWorkspace
from sources import available_sources, get_source
from utils.logging_setup import init_logging


def _open_workspace(args) -> ContactWorkspace:
    settings = get_settings()
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    store = KeyValueRepo(conn)
    session = load_session(store, settings)
    if getattr(args, "locator", None):
        session.source_locator = args.locator
    source = get_source(args.source or settings.source_kind)
    return ContactWorkspace(store, session, source, settings=settings)


def _ensure_run_id() -> None:
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex


def cmd_bootstrap(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    print("Schema ready")


def cmd_configure(args):
    ws = _open_workspace(args)
    ws.configure(args.api_key, args.sheet)
    print("Settings saved")


def cmd_reset(args):
    ws = _open_workspace(args)
    ws.reset_settings()
    print("Settings and cached results cleared")


def cmd_list(args):
    ws = _open_workspace(args)
    contacts = ws.load()
    if args.pending:
        contacts = [c for c in contacts if c.is_eligible]
    out = [c.model_dump(mode="json") for c in contacts]
    print(json.dumps(out, indent=2, ensure_ascii=False))


def _print_progress(done, total, batch):
    names = ", ".join(c.display_name or str(c.id) for c in batch)
    print(f"[{done}/{total}] {names}")


def cmd_find_all(args):
    _ensure_run_id()
    ws = _open_workspace(args)
    ws.load()
    print(f"Finding cities for {ws.pending_count} contacts")
    report = ws.find_all(args.provider, on_progress=_print_progress if args.progress else None)
    print_summary(report, ws.contacts, provider=ws.session.provider_for(args.provider))


def cmd_find(args):
    _ensure_run_id()
    ws = _open_workspace(args)
    ws.load()
    report = ws.find_one(args.id, args.provider)
    contact = ws.get(args.id)
    print(f"{contact.display_name}: {contact.city or '-'} ({contact.status.value})")
    if report.pause_message:
        print(f"Processing Paused: {report.pause_message}")


def cmd_set_city(args):
    ws = _open_workspace(args)
    ws.load()
    contact = ws.set_city(args.id, args.city)
    print(f"{contact.display_name}: {contact.city or '-'} ({contact.status.value})")


def cmd_export(args):
    ws = _open_workspace(args)
    ws.load()
    text = ws.export_csv()
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Wrote {len(ws.contacts)} contacts to {args.output}")
    else:
        sys.stdout.write(text)


def main():
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Contact city enrichment CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite state DB (default from settings)")
    parser.add_argument("--source", default=None, choices=sorted(available_sources()), help="Source adapter (default from SOURCE_KIND)")
    parser.add_argument("--locator", default=None, help="Override the stored sheet ID / URL / file path for this call")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create the state table")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_cfg = sub.add_parser("configure", help="Store the API key and sheet ID")
    p_cfg.add_argument("--api-key", required=True, help="API key for the primary provider")
    p_cfg.add_argument("--sheet", required=True, help="Google Sheet ID or URL (or file path with --source file)")
    p_cfg.set_defaults(func=cmd_configure)

    p_reset = sub.add_parser("reset", help="Clear stored key, sheet ID and cached results")
    p_reset.set_defaults(func=cmd_reset)

    p_list = sub.add_parser("list", help="Show contacts merged with cached results")
    p_list.add_argument("--pending", action="store_true", help="Only contacts still needing a city")
    p_list.set_defaults(func=cmd_list)

    p_all = sub.add_parser("find-all", help="Look up every contact still needing a city")
    p_all.add_argument("--provider", choices=["primary", "fallback"], default="primary")
    p_all.add_argument("--progress", action="store_true", help="Print progress for each batch")
    p_all.set_defaults(func=cmd_find_all)

    p_one = sub.add_parser("find", help="Look up a single contact")
    p_one.add_argument("--id", type=int, required=True)
    p_one.add_argument("--provider", choices=["primary", "fallback"], default="primary")
    p_one.set_defaults(func=cmd_find)

    p_set = sub.add_parser("set-city", help="Manually set (or clear) a contact's city")
    p_set.add_argument("--id", type=int, required=True)
    p_set.add_argument("--city", default="", help="City text; empty clears it")
    p_set.set_defaults(func=cmd_set_city)

    p_exp = sub.add_parser("export", help="Write contacts as CSV")
    p_exp.add_argument("--output", "-o", default=None, help="File path (default: stdout)")
    p_exp.set_defaults(func=cmd_export)

    args = parser.parse_args()
    try:
        args.func(args)
    except EnrichmentError as e:
        logging.error(f"{args.cmd} failed: {e}", extra={"step": args.cmd, "error": type(e).__name__})
        raise SystemExit(f"Error: {e}")


if __name__ == "__main__":
    main()
