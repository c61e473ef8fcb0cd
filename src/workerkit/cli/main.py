# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""workerkit CLI."""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from typing import Any

from ..config import HttpSettings, load_http_settings
from ..errors import WorkerKitError
from ..http import create_default_http_client
from ..log import setup_logging
from ..models import Placement, PlacementMode, UploadRequest, WorkerBinding, binding_from_mapping
from ..runtime import WorkerKit

# Field filled by VALUE in ``--binding NAME=KIND:VALUE``.
_PRIMARY_FIELDS: dict[str, str] = {
    "inherit": "old_name",
    "kv_namespace": "namespace_id",
    "durable_object_namespace": "class_name",
    "plain_text": "text",
    "secret_text": "text",
    "service": "service",
    "analytics_engine": "dataset",
    "queue": "queue_name",
    "r2_bucket": "bucket_name",
    "d1": "database_id",
    "dispatch_namespace": "namespace",
    "mtls_certificate": "certificate_id",
}
# Kinds whose VALUE is a path to a file sent as its own part.
_FILE_FIELDS: dict[str, str] = {"wasm_module": "module", "text_blob": "text"}


def parse_binding(text: str, files: ExitStack) -> tuple[str, WorkerBinding]:
    name, sep, rest = text.partition("=")
    kind, _, value = rest.partition(":")
    if not sep or not name or not kind:
        raise argparse.ArgumentTypeError(f"invalid binding {text!r}; expected NAME=KIND:VALUE")
    data: dict[str, Any] = {"kind": kind}
    if kind in _FILE_FIELDS:
        data[_FILE_FIELDS[kind]] = files.enter_context(open(value, "rb"))
    elif kind in _PRIMARY_FIELDS and value:
        data[_PRIMARY_FIELDS[kind]] = value
    return name, binding_from_mapping(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upload and inspect deployable worker scripts")
    parser.add_argument("--account-id", help="Account identifier (default: $WORKERKIT_ACCOUNT_ID)")
    parser.add_argument("--log-level", help="Logging level (default: $WORKERKIT_LOG_LEVEL or WARNING)")
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for lab/self-signed endpoints)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    upload = commands.add_parser("upload", help="Upload a script with optional bindings")
    upload.add_argument("name", help="Script name")
    upload.add_argument("file", help="Path to the script file (streamed)")
    upload.add_argument("--module", action="store_true", help="Upload as an ES module script")
    upload.add_argument("--binding", action="append", default=[], metavar="NAME=KIND:VALUE")
    upload.add_argument("--compatibility-date", default="")
    upload.add_argument("--compatibility-flag", action="append", default=[])
    upload.add_argument("--tag", action="append", default=[])
    upload.add_argument("--logpush", action="store_true", default=None)
    upload.add_argument("--smart-placement", action="store_true")
    upload.add_argument("--dispatch-namespace")

    get = commands.add_parser("get", help="Download a script")
    get.add_argument("name")
    get.add_argument("--json", action="store_true", help="Output JSON instead of raw script content")

    listing = commands.add_parser("list", help="List scripts")
    listing.add_argument("--json", action="store_true")

    delete = commands.add_parser("delete", help="Delete a script")
    delete.add_argument("name")
    return parser


def _print_json(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def _run_upload(kit: WorkerKit, args: argparse.Namespace) -> int:
    with ExitStack() as files:
        try:
            bindings = dict(parse_binding(text, files) for text in args.binding)
        except (argparse.ArgumentTypeError, WorkerKitError, OSError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        script = files.enter_context(open(args.file, "rb"))
        request = UploadRequest(
            script_name=args.name,
            script=script,
            module=args.module,
            dispatch_namespace=args.dispatch_namespace,
            bindings=bindings,
            logpush=args.logpush,
            compatibility_date=args.compatibility_date,
            compatibility_flags=list(args.compatibility_flag),
            placement=Placement(PlacementMode.SMART) if args.smart_placement else None,
            tags=list(args.tag),
        )
        outcome = kit.upload_script(request)

    if outcome.error is not None:
        print(f"{outcome.error.stage.value}: {outcome.error}", file=sys.stderr)
        return 1
    _print_json(outcome.to_dict())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings: HttpSettings = load_http_settings()
    if args.ignore_ssl_errors:
        settings.verify_ssl = False

    with WorkerKit(account_id=args.account_id, http_client=create_default_http_client(settings), settings=settings) as kit:
        if args.command == "upload":
            return _run_upload(kit, args)
        try:
            if args.command == "get":
                script = kit.fetch_script(args.name)
                if args.json:
                    _print_json({"script": script.script, "module": script.module})
                else:
                    sys.stdout.write(script.script)
            elif args.command == "list":
                scripts = kit.list_scripts()
                if args.json:
                    _print_json([item.to_dict() for item in scripts])
                else:
                    for item in scripts:
                        print(item.id)
            elif args.command == "delete":
                kit.delete_script(args.name)
        except WorkerKitError as exc:
            print(f"{exc.stage.value}: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
