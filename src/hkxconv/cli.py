"""Command line interface for hkxconv."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from .api import (
    ToBinaryOptions,
    ToTextOptions,
    convert_to_binary,
    convert_to_text,
)
from .errors import E_ARGUMENT, ArgumentError, HkxError
from .inspector import inspect_container
from .logging import configure_logging, step
from .reporting import (
    get_reporter,
    make_reporter,
    set_reporter,
    set_verbosity,
)

REPORTER_ENV = "HKXCONV_REPORTER"
REPORTERS = ["plain", "rich", "json", "silent"]


def _to_text_cmd(args: argparse.Namespace) -> int:
    step(f"converting {args.src.name} to text")
    convert_to_text(
        ToTextOptions(source=args.src, destination=args.dst, pretty=args.pretty)
    )
    return 0


def _to_binary_cmd(args: argparse.Namespace) -> int:
    step(f"converting {args.src.name} to binary")
    convert_to_binary(
        ToBinaryOptions(source=args.src, destination=args.dst, nx=args.nx)
    )
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    info = inspect_container(args.src)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0
    streams = info["streams"]
    rep.status(
        "Inspect summary: "
        + f"kind={info['extension']} size={info['file_size']} "
        + f"streams={len(streams)}"
    )
    for s in streams:
        hdr = s["header"]
        rep.status(
            f"  stream@{s['offset']}: {s['root_class']} "
            f"platform={hdr['platform']} "
            f"section_offset={hdr['section_offset']}"
        )
        for v in s.get("named_variants", []):
            rep.status(f"    {v['name']} ({v['class_name']})")
    return 0


def _check_paths(args: argparse.Namespace) -> None:
    src: Path = args.src
    if src.is_dir():
        raise ArgumentError(
            code=E_ARGUMENT,
            message=f"Source is a directory: {src}",
            context={"src": str(src)},
        )
    dst: Path | None = getattr(args, "dst", None)
    if dst is not None and dst.resolve() == src.resolve():
        raise ArgumentError(
            code=E_ARGUMENT,
            message=f"Source and destination are the same file: {src}",
            context={"src": str(src), "dst": str(dst)},
        )


def _default_reporter() -> str:
    requested = os.environ.get(REPORTER_ENV, "plain").strip().lower()
    return requested if requested in REPORTERS else "plain"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hkxconv",
        description="Convert BotW Havok packfiles to JSON and back",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=REPORTERS,
        default=_default_reporter(),
        help=(
            "Select reporter backend: plain, rich, json (JSONL events), "
            f"silent (default from {REPORTER_ENV}, else plain)"
        ),
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    t = sub.add_parser(
        "to-text",
        aliases=["hkx2json"],
        help="Convert a binary container to JSON",
    )
    t.add_argument("src", type=Path, help="hkcl/hkrg/hkrb/hktmrb/hknm2/hksc")
    t.add_argument(
        "dst",
        type=Path,
        nargs="?",
        help="Output path (default: source with a .json extension)",
    )
    t.add_argument(
        "-p", "--pretty", action="store_true", help="Indent the JSON output"
    )
    t.set_defaults(func=_to_text_cmd)

    b = sub.add_parser(
        "to-binary",
        aliases=["json2hkx"],
        help="Convert a JSON document back to a binary container",
    )
    b.add_argument("src", type=Path)
    b.add_argument(
        "dst",
        type=Path,
        nargs="?",
        help="Output path (default: source with the detected extension)",
    )
    b.add_argument(
        "--nx",
        "--platform-b",
        dest="nx",
        action="store_true",
        help="Write for Switch (8-byte pointers, little-endian)",
    )
    b.set_defaults(func=_to_binary_cmd)

    i = sub.add_parser("inspect", help="Summarize a binary container")
    i.add_argument("src", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON summary")
    i.set_defaults(func=_inspect_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    set_reporter(make_reporter(args.reporter, isatty=sys.stderr.isatty()))
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        _check_paths(args)
        return args.func(args)
    except ArgumentError as exc:
        get_reporter().error(str(exc), code=exc.code)
        parser.print_usage(sys.stderr)
        return 2
    except HkxError as exc:
        rep = get_reporter()
        rep.error(str(exc), code=exc.code)
        rep.flush()
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
