# ──────────────────────────────────────────────────────────────────────────────
# File: cli.py
# Purpose: Command-line entrypoint
#          • generate: build a context file from local files (no browser)
#          • serve   : run the FastAPI app with uvicorn
# Usage:
#   python cli.py generate -d "Todo app with auth" package.json src/*.ts
#   python cli.py generate --description-file README.md -o context.json src/*.py
#   python cli.py serve --port 8000 --reload
# Env:
#   TOGETHER_API_KEY (required for generate), COMPLETION_* overrides
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from services.context_builder import SourceFile
from services.context_generator import generate_context


def _read_sources(paths: Sequence[str]) -> List[SourceFile]:
    files: List[SourceFile] = []
    for p in paths:
        path = Path(p)
        try:
            data = path.read_bytes()
        except OSError as e:
            print(f"[contextgen] skipping unreadable file {p}: {e}", file=sys.stderr)
            continue
        files.append(SourceFile.from_bytes(path.name, data))
    return files


def _generate(args: argparse.Namespace) -> int:
    description = args.description or ""
    if args.description_file:
        try:
            description = Path(args.description_file).read_text(encoding="utf-8")
        except OSError as e:
            print(f"[contextgen] cannot read description file: {e}", file=sys.stderr)
            return 2
    if not description.strip():
        print("[contextgen] a project description is required (-d or --description-file)", file=sys.stderr)
        return 2

    files = _read_sources(args.files)
    if not files:
        print("[contextgen] at least one readable file is required", file=sys.stderr)
        return 2

    try:
        context = asyncio.run(generate_context(description, files, corr_id="cli"))
    except Exception as e:
        print(f"[contextgen] ERROR: {e}", file=sys.stderr)
        return 1

    text = json.dumps(context, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        print(f"[contextgen] wrote {args.output}")
    else:
        print(text)
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contextgen", description="Generate AI context files for a codebase.")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Build a context file from local files")
    gen.add_argument("files", nargs="*", help="Source files to include")
    desc = gen.add_mutually_exclusive_group()
    desc.add_argument("--description", "-d", default=None, help="Free-text project description")
    desc.add_argument("--description-file", default=None, help="Read the description from a file")
    gen.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    gen.set_defaults(func=_generate)

    srv = sub.add_parser("serve", help="Run the web app")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    srv.set_defaults(func=_serve)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s - %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
