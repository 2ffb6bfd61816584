"""Span tree builder: reconstructs hierarchy from a flat span list."""

from __future__ import annotations

from typing import Dict, List

from trace_tree.diagnostics import DiagnosticSink, null_sink
from trace_tree.merge import merge_trace
from trace_tree.model import Span
from trace_tree.node import Node, TreeBuilder


def group_by_trace(spans: List[Span]) -> Dict[str, List[Span]]:
    """Group spans by trace_id into a dict, in first-seen order."""
    groups: Dict[str, List[Span]] = {}
    for span in spans:
        groups.setdefault(span.trace_id, []).append(span)
    return groups


def _merge_spans(existing: Span | None, update: Span | None) -> Span:
    if existing is None:
        return update
    if update is None:
        return existing
    return existing.merge(update)


def build_tree(
    spans: List[Span],
    merge: bool = True,
    sink: DiagnosticSink = null_sink,
) -> Node[Span]:
    """Build the span tree of a single trace.

    - Parts of the same span are merged first (see :func:`merge_trace`)
    - Shared (RPC server) spans become children of the client span with the same id
    - Spans whose parent is missing are attached to the root
    - With no root span, the returned root has value None
    """
    if merge:
        spans = merge_trace(spans, sink)

    trace_id = spans[0].trace_id if spans else None
    builder: TreeBuilder[Span] = TreeBuilder(trace_id, _merge_spans, sink)
    for span in spans:
        builder.add_node(span.parent_id, span.id, span.shared, span)
    return builder.build()
