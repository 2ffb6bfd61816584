"""CLI entry point for trace-tree."""

from __future__ import annotations

import argparse
import logging
import sys

from trace_tree import __version__
from trace_tree.diagnostics import logging_sink, null_sink
from trace_tree.merge import merge_trace
from trace_tree.parser import parse_file
from trace_tree.render import render_json, render_tree
from trace_tree.tree import build_tree, group_by_trace


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns 0 on success, 1 on error."""
    parser = argparse.ArgumentParser(
        prog="trace-tree",
        description="Merge Zipkin spans and print the reconstructed trace trees",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "input",
        help="Span file path (.json or .json.gz, one JSON array per line), or - for stdin",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--format",
        choices=("tree", "json"),
        default="tree",
        help="tree: indented span tree per trace; json: merged spans (default: tree)",
    )
    parser.add_argument(
        "--no-merge",
        action="store_true",
        help="Don't merge span parts before building trees",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log topology repairs to stderr",
    )

    args = parser.parse_args(argv)

    sink = null_sink
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )
        sink = logging_sink()

    try:
        spans = parse_file(args.input)
        traces = group_by_trace(spans)

        if args.format == "json":
            merged = []
            for trace_spans in traces.values():
                merged.extend(trace_spans if args.no_merge else merge_trace(trace_spans, sink))
            output = render_json(merged) + "\n"
        else:
            output = "".join(
                render_tree(build_tree(trace_spans, merge=not args.no_merge, sink=sink))
                for trace_spans in traces.values()
            )

        if args.output is None:
            sys.stdout.write(output)
        else:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(output)
            print(
                f"Wrote {args.output} ({len(spans)} spans, {len(traces)} traces)",
                file=sys.stderr,
            )
        return 0

    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except PermissionError as exc:
        print(f"Error: Permission denied: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
