"""
compile_from_json.py — CLI for the GlitchGraph compiler
=======================================================
Compiles a saved graph JSON file into Script DSL text.

Usage
-----
    glitchgraph-compile <graph.json> [options]
    python -m glitchgraph.compile_from_json <graph.json> [options]

Options
-------
    --out        <file>   Write the script to a file instead of stdout
    --strict              Treat unknown function names as errors (default: warnings only)
    --log-level  <level>  Logging level (default: GLITCHGRAPH_LOG_LEVEL or WARNING)

Exit codes
----------
    0  script compiled
    1  file missing, invalid JSON, or schema validation failed
    2  the graph has no Timing node

Examples
--------
    # Print the script:
    glitchgraph-compile graphs/burn_on_hit.json

    # Write it next to the mod files:
    glitchgraph-compile graphs/burn_on_hit.json --out mods/burn_on_hit.txt
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from glitchgraph.compiler import CompileError, compile_graph
from glitchgraph.compiler.deserialiser import json_to_store
from glitchgraph.compiler.schema import SchemaError, validate_file
from glitchgraph.config import configure_logging, load_env_file

logger = logging.getLogger("glitchgraph.compile_from_json")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="glitchgraph-compile",
        description="Compile a GlitchGraph JSON graph to Script DSL text.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    p.add_argument(
        "graph_json",
        metavar="graph.json",
        help="Path to the graph JSON file to compile.",
    )
    p.add_argument(
        "--out",
        metavar="FILE",
        default=None,
        help="Write the compiled script to FILE instead of printing it.",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        help="Treat unknown function names as errors rather than warnings.",
    )
    p.add_argument(
        "--log-level",
        default=os.environ.get("GLITCHGRAPH_LOG_LEVEL", "WARNING"),
        help="Logging level name (DEBUG, INFO, WARNING, ...).",
    )
    return p


def _parse_args(argv=None) -> argparse.Namespace:
    # --log-level falls back to GLITCHGRAPH_LOG_LEVEL, which may come from .env
    load_env_file()
    return _build_parser().parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    configure_logging(args.log_level)

    json_path = Path(args.graph_json)
    if not json_path.exists():
        print(f"[error] File not found: {json_path}", file=sys.stderr)
        return 1

    # ── Validate JSON ────────────────────────────────────────────────────────
    try:
        data = validate_file(json_path, strict=args.strict)
    except json.JSONDecodeError as exc:
        print(f"[error] Invalid JSON: {exc}", file=sys.stderr)
        return 1
    except SchemaError as exc:
        print(f"[error] Schema validation failed: {exc}", file=sys.stderr)
        return 1

    graph_name = data.get("graph_name", json_path.stem)
    logger.info(f"graph  : {graph_name}")

    # ── Deserialise JSON → GraphStore ────────────────────────────────────────
    store = json_to_store(data)
    logger.info(f"nodes  : {len(store.nodes)}")
    logger.info(f"edges  : {len(store.edges)}")

    # ── Compile ──────────────────────────────────────────────────────────────
    result = compile_graph(store)
    for message in result.warnings():
        print(f"[warning] {message}", file=sys.stderr)

    if result.error == CompileError.NO_ENTRY_POINT:
        print(f"[error] {result.text}", file=sys.stderr)
        return 2

    # ── Output ───────────────────────────────────────────────────────────────
    if args.out is None:
        print(result.text)
        return 0

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(result.text + "\n", encoding="utf-8")
    logger.info(f"wrote  : {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
