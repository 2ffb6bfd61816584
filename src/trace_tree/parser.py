"""Zipkin v2 JSON span reader.

Input is newline-delimited: each line holds either a JSON array of spans (the
body of a ``POST /api/v2/spans``) or a single span object.
"""

from __future__ import annotations

import gzip
import json
import sys
import warnings
from typing import IO, Any, Optional

from trace_tree.model import Annotation, Endpoint, Span


def normalize_id(raw_id: str | None) -> str:
    """Normalize a trace/span ID to a lowercase hex string.

    IDs shorter than 16 characters are left-padded with zeros to 16, and IDs
    between 17 and 31 characters to 32, so 64-bit and 128-bit forms line up.
    """
    if not raw_id:
        return ""
    normalized = raw_id.strip().lower()
    if len(normalized) < 16:
        return normalized.rjust(16, "0")
    if 16 < len(normalized) < 32:
        return normalized.rjust(32, "0")
    return normalized


def _get(raw: dict[str, Any], camel: str, snake: str) -> Any:
    value = raw.get(camel)
    return raw.get(snake) if value is None else value


def parse_endpoint(raw: Any) -> Optional[Endpoint]:
    """Convert an endpoint object; empty or invalid objects become None."""
    if not isinstance(raw, dict):
        return None
    service_name = _get(raw, "serviceName", "service_name")
    endpoint = Endpoint(
        service_name=str(service_name).lower() if service_name else None,
        ipv4=raw.get("ipv4") or None,
        ipv6=raw.get("ipv6") or None,
        port=int(raw["port"]) if raw.get("port") else None,
    )
    if endpoint == Endpoint():
        return None
    return endpoint


def parse_span(raw: dict[str, Any]) -> Span:
    """Convert a Zipkin v2 JSON span into a :class:`Span`.

    Raises KeyError if ``traceId`` or ``id`` is missing.
    """
    trace_id = normalize_id(_get(raw, "traceId", "trace_id"))
    span_id = normalize_id(raw["id"])
    if not trace_id or not span_id:
        raise KeyError("traceId" if not trace_id else "id")
    parent_id = normalize_id(_get(raw, "parentId", "parent_id")) or None

    timestamp = raw.get("timestamp")
    duration = raw.get("duration")

    annotations = [
        Annotation(timestamp=int(a["timestamp"]), value=str(a["value"]))
        for a in raw.get("annotations") or []
        if isinstance(a, dict)
    ]
    tags = raw.get("tags") or {}
    if not isinstance(tags, dict):
        tags = {}

    return Span(
        trace_id=trace_id,
        id=span_id,
        parent_id=parent_id,
        kind=raw.get("kind") or None,
        name=raw.get("name") or None,
        timestamp=int(timestamp) if timestamp else None,
        duration=int(duration) if duration else None,
        local_endpoint=parse_endpoint(_get(raw, "localEndpoint", "local_endpoint")),
        remote_endpoint=parse_endpoint(_get(raw, "remoteEndpoint", "remote_endpoint")),
        annotations=sorted(annotations),
        tags={str(k): str(v) for k, v in tags.items()},
        debug=raw.get("debug"),
        shared=raw.get("shared"),
    )


def parse_line(line: str) -> list[Span]:
    """Parse a single NDJSON line.

    Raises ValueError if the JSON is malformed or is neither a span object nor
    an array. Malformed spans inside a valid array are skipped.
    """
    data = json.loads(line)

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError("Line is not a JSON array or object")

    spans: list[Span] = []
    for raw in data:
        if not isinstance(raw, dict):
            continue
        try:
            spans.append(parse_span(raw))
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
    return spans


def parse_stream(stream: IO) -> list[Span]:
    """Parse an NDJSON stream, returning all extracted spans.

    Skips malformed lines with warnings. Handles empty streams.
    """
    spans: list[Span] = []
    for line_num, line in enumerate(stream, start=1):
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.strip()
        if not line:
            continue
        try:
            spans.extend(parse_line(line))
        except ValueError as exc:
            warnings.warn(
                f"Skipping malformed line {line_num}: {exc}",
                stacklevel=2,
            )
    return spans


def parse_file(path: str) -> list[Span]:
    """Parse a span file (plain or gzip-compressed), or ``-`` for stdin."""
    if path == "-":
        return parse_stream(sys.stdin)

    if path.endswith(".gz"):
        with gzip.open(path, "rt", encoding="utf-8") as f:
            return parse_stream(f)

    with open(path, encoding="utf-8") as f:
        return parse_stream(f)
