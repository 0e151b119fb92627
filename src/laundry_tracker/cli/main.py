from __future__ import annotations

import argparse
import asyncio
import base64
import binascii
import json
import os
import sys
from typing import Any, Dict, List, Optional, Sequence

from ..config import load_extraction_config, load_price_schedule
from ..domain.models import OrderRecord
from ..domain.normalize import coerce_weight, format_weight, local_datetime
from ..domain.pricing import price_for
from ..errors import ExtractionError
from ..extraction.photos import Photo
from ..extraction.vision import VisionExtractor
from ..ledger.aggregate import group
from ..ledger.blobstore import SqliteBlobStore
from ..ledger.export import write_export
from ..ledger.selection import SelectionController, delete_prompt
from ..ledger.store import LedgerStore
from ..logging import get_logger
from ..paths import expand_abs, find_project_root
from ..workflow.draft import FIELD_CUSTOMER_NAME, FIELD_DELIVERY_ADDRESS, FIELD_WEIGHT, DraftEditor, urgency_message
from ..workflow.session import BatchSession

LOG = get_logger("cli-main")


def _root(ns: argparse.Namespace) -> str:
    return expand_abs(ns.root) if ns.root else find_project_root()


def _open_store(ns: argparse.Namespace) -> LedgerStore:
    store = LedgerStore(SqliteBlobStore(_root(ns)))
    store.load()
    return store


def _ask(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _money(value: Optional[float]) -> str:
    return f"{(value or 0.0):.2f} EUR"


def _print_record(record: OrderRecord) -> None:
    dt = local_datetime(record.timestamp)
    print(f"Timestamp      : {record.timestamp} ({dt.strftime('%Y-%m-%d %H:%M:%S')})")
    print(f"Laundry service: {record.service_name}")
    print(f"Order number   : {record.order_number or '-'}")
    print(f"Customer name  : {record.customer_name or '-'}")
    print(f"Address        : {record.delivery_address or '-'}")
    print(f"Weight         : {format_weight(record.weight)} kg")
    print(f"Price          : {_money(record.price)}")
    print(f"Confidence     : {int(round(record.confidence * 100))}%")
    print(f"Weight photo   : {'stored' if record.weight_image_src else '-'}")
    print(f"Customer photo : {'stored' if record.customer_image_src else '-'}")


_PHOTO_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


def _save_photo(data_url: Optional[str], output_dir: str, stem: str) -> Optional[str]:
    """Decode a stored data URL into output_dir; None when absent or malformed."""
    if not data_url or not data_url.startswith("data:") or ";base64," not in data_url:
        return None
    header, b64 = data_url[len("data:"):].split(";base64,", 1)
    try:
        data = base64.b64decode(b64, validate=True)
    except binascii.Error as exc:
        LOG.warning(f"Stored photo {stem} is not valid base64: {exc}")
        return None
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, stem + _PHOTO_EXTENSIONS.get(header, ".bin"))
    with open(path, "wb") as handle:
        handle.write(data)
    return path


def _print_draft(draft: DraftEditor) -> None:
    print(f"[{draft.urgency.value.upper()} {draft.confidence_percent}%] {urgency_message(draft.urgency)}")
    print(f"Laundry service: {draft.original.service_name}")
    print(f"Order number   : {draft.original.order_number or '-'}")
    print(f"Customer name  : {draft.text(FIELD_CUSTOMER_NAME) or '-'}")
    print(f"Address        : {draft.text(FIELD_DELIVERY_ADDRESS) or '-'}")
    print(f"Weight         : {draft.text(FIELD_WEIGHT)} kg")
    print(f"Price          : {_money(draft.price)}")


def _handle_submit(ns: argparse.Namespace) -> int:
    root = _root(ns)
    schedule = load_price_schedule(root)
    config = load_extraction_config(root)
    try:
        weight_photo = Photo.from_path(expand_abs(ns.weight_photo))
        customer_photo = Photo.from_path(expand_abs(ns.customer_photo))
    except ExtractionError as exc:
        LOG.error(f"Cannot use photo: {exc}")
        return 2

    store = _open_store(ns)
    session = BatchSession(store, VisionExtractor(config, schedule=schedule), schedule=schedule)
    draft = asyncio.run(session.submit(ns.service, weight_photo, customer_photo))
    if draft is None:
        if session.error:
            print(session.error, file=sys.stderr)
            return 1
        LOG.error("A laundry service name and both photos are required")
        return 2

    edits = (
        (FIELD_WEIGHT, ns.weight),
        (FIELD_CUSTOMER_NAME, ns.customer_name),
        (FIELD_DELIVERY_ADDRESS, ns.address),
    )
    for name, text in edits:
        if text is not None:
            draft.edit(name, text)
    _print_draft(draft)

    if ns.discard:
        session.discard()
        print("Draft discarded.")
        return 0
    if not ns.yes and not _ask("Save this order to the ledger? [y/N] "):
        session.discard()
        print("Draft discarded.")
        return 0
    record = session.confirm()
    print(f"Saved order {record.timestamp} ({_money(record.price)}).")
    return 0


def _history_json(store: LedgerStore) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for month in group(store.records):
        services = []
        for svc in month.services:
            orders = []
            for r in svc.records:
                d = r.to_dict()
                d.pop("weight_image_src", None)
                d.pop("customer_image_src", None)
                orders.append(d)
            services.append(
                {
                    "laundry_service_name": svc.display_name,
                    "count": svc.record_count,
                    "total_weight_kg": round(svc.total_weight, 3),
                    "total_price": round(svc.total_price, 2),
                    "orders": orders,
                }
            )
        out.append(
            {
                "month": month.sort_key,
                "label": month.label,
                "total_weight_kg": round(month.total_weight, 3),
                "total_price": round(month.total_price, 2),
                "services": services,
            }
        )
    return out


def _handle_history(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    if ns.json:
        print(json.dumps(_history_json(store), ensure_ascii=False, indent=2))
        return 0
    months = group(store.records)
    if not months:
        print("No orders recorded yet.")
        return 0
    for month in months:
        print(f"{month.label}: {len(month.records)} order(s), {format_weight(round(month.total_weight, 3))} kg, {_money(month.total_price)}")
        for svc in month.services:
            print(f"  {svc.display_name}: {svc.record_count} order(s), {format_weight(round(svc.total_weight, 3))} kg, {_money(svc.total_price)}")
            for r in svc.records:
                print(f"    {r.timestamp}  #{r.order_number or '-'}  {r.customer_name or '-'}  {format_weight(r.weight)} kg  {_money(r.price)}")
    return 0


def _handle_show(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    controller = SelectionController(store)
    for record in store.records:
        if record.timestamp == ns.timestamp:
            _print_record(controller.activate(record))
            if ns.save_photos:
                outdir = expand_abs(ns.save_photos)
                photos = (
                    ("weight", record.weight_image_src),
                    ("customer", record.customer_image_src),
                )
                for kind, src in photos:
                    saved = _save_photo(src, outdir, f"{record.timestamp}-{kind}")
                    if saved:
                        print(f"Saved photo    : {saved}")
            return 0
    LOG.error(f"No order with timestamp {ns.timestamp}")
    return 1


def _handle_delete(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    known = {r.timestamp for r in store.records}
    controller = SelectionController(store)
    controller.toggle_mode()
    for ts in ns.timestamps:
        if ts not in known:
            LOG.warning(f"No order with timestamp {ts}; skipping")
            continue
        if not controller.is_selected(ts):
            controller.toggle(ts)
    if controller.count == 0:
        LOG.error("Nothing to delete")
        return 1

    def _confirm(count: int) -> bool:
        return ns.yes or _ask(f"{delete_prompt(count)} [y/N] ")

    removed = controller.delete_selected(_confirm)
    print(f"Deleted {removed} order(s).")
    return 0


def _handle_export(ns: argparse.Namespace) -> int:
    store = _open_store(ns)
    output_dir = expand_abs(ns.output_dir) if ns.output_dir else os.getcwd()
    path = write_export(store.records, output_dir)
    if path:
        print(path)
    return 0


def _handle_price(ns: argparse.Namespace) -> int:
    weight = coerce_weight(ns.weight)
    if weight is None:
        LOG.error(f"Not a weight: {ns.weight!r}")
        return 2
    schedule = load_price_schedule(_root(ns))
    print(f"{price_for(weight, schedule):.2f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="laundry-tracker",
        description="Record laundry batches from photos and keep the order ledger.",
    )
    parser.add_argument("--root", help="Project root holding var/ and .env (default: detected from cwd)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="Extract one order from a weight photo and a label photo.")
    submit.add_argument("--service", required=True, help="Laundry service name")
    submit.add_argument("--weight-photo", required=True, help="Photo of the scale")
    submit.add_argument("--customer-photo", required=True, help="Photo of the shipping label")
    submit.add_argument("--weight", help="Override the extracted weight (kg)")
    submit.add_argument("--customer-name", help="Override the extracted customer name")
    submit.add_argument("--address", help="Override the extracted delivery address")
    outcome = submit.add_mutually_exclusive_group()
    outcome.add_argument("--yes", action="store_true", help="Save without asking")
    outcome.add_argument("--discard", action="store_true", help="Show the draft, then throw it away")
    submit.set_defaults(handler=_handle_submit)

    history = subparsers.add_parser("history", help="Show orders grouped by month and laundry service.")
    history.add_argument("--json", action="store_true", help="Print the hierarchy as JSON")
    history.set_defaults(handler=_handle_history)

    show = subparsers.add_parser("show", help="Show one order in detail.")
    show.add_argument("timestamp", type=int)
    show.add_argument("--save-photos", metavar="DIR", help="Write the stored photos into DIR")
    show.set_defaults(handler=_handle_show)

    delete = subparsers.add_parser("delete", help="Delete orders by timestamp.")
    delete.add_argument("timestamps", nargs="+", type=int)
    delete.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    delete.set_defaults(handler=_handle_delete)

    export = subparsers.add_parser("export", help="Write the ledger as CSV.")
    export.add_argument("--output-dir", help="Target directory (default: current directory)")
    export.set_defaults(handler=_handle_export)

    price = subparsers.add_parser("price", help="Price a weight with the configured schedule.")
    price.add_argument("weight")
    price.set_defaults(handler=_handle_price)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug(f"CLI invoked with arguments: {provided}")
    args = build_parser().parse_args(provided)
    code = args.handler(args)
    LOG.debug(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
