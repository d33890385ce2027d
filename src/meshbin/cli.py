"""Command line interface for meshbin."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .api import FormatOptions, inspect_mesh, load_mesh, save_mesh, validate_mesh
from .document import load_document, mesh_to_document
from .errors import MeshBinError
from .logging import configure_logging, section, step
from .reporting import (
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    SilentReporter,
    get_reporter,
    set_reporter,
    set_verbosity,
)


def _options(args: argparse.Namespace) -> FormatOptions:
    return FormatOptions(float_type=args.float_type, index_type=args.index_type)


def _pack_cmd(args: argparse.Namespace) -> int:
    step(f"loading {args.source}")
    mesh = load_document(args.source)
    written = save_mesh(mesh, args.output, _options(args))
    get_reporter().status(
        f"Pack summary: properties={len(mesh)} bytes={written}"
    )
    return 0


def _unpack_cmd(args: argparse.Namespace) -> int:
    mesh = load_mesh(args.source, _options(args))
    text = json.dumps(mesh_to_document(mesh), indent=2)
    if args.output is None:
        print(text)
    else:
        args.output.write_text(text + "\n", encoding="utf-8")
        step(f"wrote {args.output}")
    return 0


def _inspect_cmd(args: argparse.Namespace) -> int:
    info = inspect_mesh(args.source, _options(args))
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True))
        return 0
    with section(args.source.name):
        rep.status(
            f"Mesh summary: file_size={info['file_size']} "
            f"properties={info['property_count']} "
            f"float={info['float_type']} index={info['index_type']}"
        )
        for entry in info["properties"]:
            rep.status(
                f"{entry['name']!r}: V={entry['values']} F={entry['indices']}"
            )
    return 0


def _validate_cmd(args: argparse.Namespace) -> int:
    issues = validate_mesh(args.source, _options(args))
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    if not issues:
        rep.status(f"{args.source.name}: ok")
    return 1 if issues else 0


def _add_format_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--float",
        dest="float_type",
        choices=["f32", "f64"],
        default="f64",
        help="Width of V values (default: f64)",
    )
    p.add_argument(
        "--index",
        dest="index_type",
        choices=["i32", "i64"],
        default="i32",
        help="Width of F indices (default: i32)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="meshbin", description="Binary mesh file tool"
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
        choices=["plain", "rich", "json", "silent"],
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    pk = sub.add_parser("pack", help="Encode a JSON/YAML mesh document")
    pk.add_argument("source", type=Path)
    pk.add_argument("output", type=Path)
    _add_format_args(pk)
    pk.set_defaults(func=_pack_cmd)

    up = sub.add_parser("unpack", help="Decode a mesh file to JSON")
    up.add_argument("source", type=Path)
    up.add_argument("output", type=Path, nargs="?")
    _add_format_args(up)
    up.set_defaults(func=_unpack_cmd)

    i = sub.add_parser("inspect", help="Summarize a mesh file")
    i.add_argument("source", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON summary")
    _add_format_args(i)
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Check that a mesh file decodes")
    v.add_argument("source", type=Path)
    _add_format_args(v)
    v.set_defaults(func=_validate_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich" and sys.stderr.isatty():
        set_reporter(RichReporter())
    else:
        # rich falls back to plain without a TTY
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except MeshBinError as e:
        get_reporter().error(str(e))
        return 1
    except OSError as e:
        get_reporter().error(str(e))
        return 1
    finally:
        get_reporter().flush()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
