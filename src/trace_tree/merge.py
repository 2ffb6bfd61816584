"""Trace merge: canonicalizes the spans reported for one trace.

Spans can be sent in multiple parts, and RPC client and server sides can share
the same span ID. This folds the parts together and patches shared spans that
were not propagated their parent ID.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from functools import reduce
from itertools import groupby
from typing import Any, List, Optional, Tuple

from trace_tree.diagnostics import DiagnosticSink, emit, null_sink
from trace_tree.model import Endpoint, Span


def _null_first(value: Any) -> Tuple[int, Any]:
    return (0, "") if value is None else (1, value)


def _endpoint_key(endpoint: Optional[Endpoint]) -> Tuple:
    # A server can get the same request on a different port; port is not compared.
    if endpoint is None:
        return (0,)
    return (
        1,
        _null_first(endpoint.service_name),
        _null_first(endpoint.ipv4),
        _null_first(endpoint.ipv6),
    )


def cleanup_key(span: Span) -> Tuple:
    """Sort key placing parts of the same span next to each other.

    Orders by id, then unshared before shared, then local endpoint with spans
    lacking one first so their data attaches to the next part.
    """
    return (span.id, span.shared is True, _endpoint_key(span.local_endpoint))


def _fold_key(span: Span) -> Tuple[str, bool, Optional[Endpoint]]:
    return (span.id, span.shared is True, span.local_endpoint)


def _missing_shared_parent(first: Span, following: Span) -> bool:
    return (
        following.id == first.id
        and first.shared is not True
        and following.shared is True
        and following.parent_id is None
        and first.parent_id is not None
    )


def _scan(ordered: List[Span], trace_id: str) -> Tuple[str, bool]:
    """Pick the canonical trace ID and report whether any repair is needed."""
    fix_needed = False
    length = len(ordered)
    i = 0
    while i < length:
        first = ordered[i]
        if len(first.trace_id) != len(trace_id):
            fix_needed = True
        if len(trace_id) != 32:
            trace_id = first.trace_id

        if first.id == first.parent_id:
            fix_needed = True

        first_key = _fold_key(first)
        while i + 1 < length and ordered[i + 1].id == first.id:
            following = ordered[i + 1]
            if _fold_key(following) == first_key:
                fix_needed = True  # multiple parts
                i += 1
                continue
            if _missing_shared_parent(first, following):
                fix_needed = True
            break
        i += 1
    return trace_id, fix_needed


def _normalize(span: Span, trace_id: str) -> Span:
    updates = {}
    if len(span.trace_id) != len(trace_id):
        updates["trace_id"] = trace_id
    if span.parent_id is not None and span.parent_id == span.id:
        updates["parent_id"] = None
    if not updates:
        return span
    return replace(span, **updates)


def merge_trace(spans: List[Span], sink: DiagnosticSink = null_sink) -> List[Span]:
    """Merge the parts of each span in a trace.

    Returns ``spans`` itself when nothing needs fixing. Otherwise returns a new
    list in :func:`cleanup_key` order, possibly shorter than the input.
    """
    if len(spans) <= 1:
        return spans

    ordered = sorted(spans, key=cleanup_key)
    trace_id, fix_needed = _scan(ordered, spans[0].trace_id)
    if not fix_needed:
        return spans

    result: List[Span] = []
    for _key, run in groupby(ordered, key=_fold_key):
        parts = [_normalize(span, trace_id) for span in run]
        merged = reduce(lambda left, right: left.merge(right), parts)
        if len(parts) > 1:
            emit(
                sink,
                logging.DEBUG,
                f"merged {len(parts)} parts of span: traceId={trace_id}, spanId={merged.id}",
                trace_id,
                merged.id,
            )

        if result and _missing_shared_parent(result[-1], merged):
            # shared RPC server span that was not propagated its parent ID
            emit(
                sink,
                logging.DEBUG,
                f"copying parent ID onto shared span: traceId={trace_id}, spanId={merged.id}",
                trace_id,
                merged.id,
            )
            merged = replace(merged, parent_id=result[-1].parent_id)
        result.append(merged)
    return result
