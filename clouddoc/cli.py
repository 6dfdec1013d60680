"""
Command line interface.

Usage:
    clouddoc check
    clouddoc init inventory
    clouddoc set inventory sku-1001 price 9.99 --type decimal
    clouddoc show inventory sku-1001 --preload
    clouddoc ls inventory --filter "price > '5'" --limit 20
    clouddoc rm inventory sku-1001
    clouddoc blobs inventory
    clouddoc drop inventory --yes
"""

from __future__ import annotations

import argparse
import json
import sys
import xml.etree.ElementTree as ET
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from .config import get_config
from .database import Database
from .exceptions import CloudDocError
from .models.codec import serialize_payload

console = Console()

VALUE_PARSERS: Dict[str, Callable[[str], Any]] = {
    "text": str,
    "int": int,
    "decimal": Decimal,
    "double": float,
    "datetime": datetime.fromisoformat,
    "json": json.loads,
    "xml": ET.fromstring,
}


def _make_database() -> Database:
    return Database(config=get_config())


def _display(value: Any) -> str:
    if value is None:
        return "[dim]null[/dim]"
    if isinstance(value, (ET.Element, dict, list)):
        return serialize_payload(value)
    return str(value)


def _open(db: Database, name: str) -> bool:
    if db.open(name):
        return True
    console.print(f"[red]✗ Cannot open database {name}[/red]")
    return False


def cmd_check(db: Database, args: argparse.Namespace) -> int:
    config = db.config
    console.print(f"AWS Region: {config.aws.region}")
    console.print(f"Has Credentials: {config.aws.has_credentials}")

    if not db.connect():
        console.print("[red]✗ Cannot reach SimpleDB/S3[/red]")
        console.print("Possible issues: missing credentials, insufficient permissions, network")
        return 1

    table = Table(title="Backing stores")
    table.add_column("Kind")
    table.add_column("Name")
    for domain in db.known_domains:
        table.add_row("domain", domain)
    for bucket in db.known_buckets:
        table.add_row("bucket", bucket)
    console.print(table)
    console.print("[green]✓ Connected[/green]")
    return 0


def cmd_init(db: Database, args: argparse.Namespace) -> int:
    if not db.init(args.database):
        console.print(f"[red]✗ Cannot initialize database {args.database}[/red]")
        return 1
    console.print(f"[green]✓ Database {args.database} ready (bucket {db.bucket_name})[/green]")
    return 0


def cmd_ls(db: Database, args: argparse.Namespace) -> int:
    if not _open(db, args.database):
        return 1
    try:
        if args.filter or args.limit is not None:
            names = [doc.name for doc in db.search(args.filter, args.limit)]
        else:
            names = db.get_all_documents()
    except CloudDocError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    for name in names:
        console.print(name)
    console.print(f"[dim]{len(names)} documents[/dim]")
    return 0


def cmd_show(db: Database, args: argparse.Namespace) -> int:
    if not _open(db, args.database):
        return 1
    doc = db.get_document(args.document, preload=args.preload)
    if doc is None:
        console.print(f"[red]✗ Document {args.document} not found[/red]")
        return 1

    table = Table(title=str(doc))
    table.add_column("Item")
    table.add_column("Stored as")
    table.add_column("Value", overflow="fold")
    for item in doc.items:
        if item.is_loaded:
            shown = _display(item.value)
        else:
            shown = f"[dim]{item.path} (not loaded)[/dim]"
        table.add_row(item.name, item.mime_type or "inline", shown)
    console.print(table)
    return 0


def cmd_set(db: Database, args: argparse.Namespace) -> int:
    if not _open(db, args.database):
        return 1
    raw = Path(args.value[1:]).read_text(encoding="utf-8") if args.value.startswith("@") else args.value
    try:
        value = VALUE_PARSERS[args.type](raw)
    except (ValueError, InvalidOperation, ET.ParseError) as e:
        console.print(f"[red]✗ Not a valid {args.type} value: {e}[/red]")
        return 1

    try:
        doc = db.get_document(args.document) or db.create_document(args.document)
        doc[args.item] = value
        doc.save()
    except CloudDocError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1
    item = doc.get_item(args.item)
    console.print(f"[green]✓ {args.document}.{args.item} saved ({item.mime_type or 'inline'})[/green]")
    return 0


def cmd_rm(db: Database, args: argparse.Namespace) -> int:
    if not _open(db, args.database):
        return 1
    if not db.delete_document(args.document):
        console.print(f"[red]✗ Cannot delete {args.document}[/red]")
        return 1
    console.print(f"[green]✓ Deleted {args.document}[/green]")
    return 0


def cmd_blobs(db: Database, args: argparse.Namespace) -> int:
    if not _open(db, args.database):
        return 1
    keys = db.list_blobs()
    for key in keys:
        console.print(key)
    console.print(f"[dim]{len(keys)} objects in {db.bucket_name}[/dim]")
    return 0


def cmd_drop(db: Database, args: argparse.Namespace) -> int:
    if not args.yes:
        console.print("[yellow]Refusing to drop without --yes (this cannot be undone)[/yellow]")
        return 1
    if not _open(db, args.database):
        return 1
    if not db.remove():
        console.print(f"[red]✗ Cannot drop {args.database}[/red]")
        return 1
    console.print(f"[green]✓ Dropped {args.database}[/green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clouddoc", description="SimpleDB/S3 document database")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Verify AWS access and list domains and buckets")
    check.set_defaults(handler=cmd_check)

    init = sub.add_parser("init", help="Create (or repair) a database")
    init.add_argument("database")
    init.set_defaults(handler=cmd_init)

    ls = sub.add_parser("ls", help="List documents")
    ls.add_argument("database")
    ls.add_argument("--filter", help="SimpleDB where-clause")
    ls.add_argument("--limit", type=int)
    ls.set_defaults(handler=cmd_ls)

    show = sub.add_parser("show", help="Print the items of a document")
    show.add_argument("database")
    show.add_argument("document")
    show.add_argument("--preload", action="store_true", help="Fetch externalized values too")
    show.set_defaults(handler=cmd_show)

    set_ = sub.add_parser("set", help="Set one item value and save")
    set_.add_argument("database")
    set_.add_argument("document")
    set_.add_argument("item")
    set_.add_argument("value", help="Value, or @path to read it from a file")
    set_.add_argument("--type", choices=sorted(VALUE_PARSERS), default="text")
    set_.set_defaults(handler=cmd_set)

    rm = sub.add_parser("rm", help="Delete a document")
    rm.add_argument("database")
    rm.add_argument("document")
    rm.set_defaults(handler=cmd_rm)

    blobs = sub.add_parser("blobs", help="List objects in the database bucket")
    blobs.add_argument("database")
    blobs.set_defaults(handler=cmd_blobs)

    drop = sub.add_parser("drop", help="Delete the bucket and domain of a database")
    drop.add_argument("database")
    drop.add_argument("--yes", action="store_true")
    drop.set_defaults(handler=cmd_drop)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    with _make_database() as db:
        return args.handler(db, args)


if __name__ == "__main__":
    sys.exit(main())
