"""Output rendering: Zipkin v2 JSON for span lists, indented text for trees."""

from __future__ import annotations

import json
from dataclasses import fields
from typing import Any, Dict, List, Optional

from trace_tree.model import Span
from trace_tree.node import Node

_JSON_KEYS = {
    "trace_id": "traceId",
    "parent_id": "parentId",
    "local_endpoint": "localEndpoint",
    "remote_endpoint": "remoteEndpoint",
    "service_name": "serviceName",
}


def _serialize(obj: Any) -> Any:
    """Recursively serialize dataclasses to JSON-safe types, dropping empty fields."""
    if hasattr(obj, "__dataclass_fields__"):
        result: Dict[str, Any] = {}
        for f in fields(obj):
            value = _serialize(getattr(obj, f.name))
            if value is None or value == [] or value == {}:
                continue
            result[_JSON_KEYS.get(f.name, f.name)] = value
        return result
    if isinstance(obj, list):
        return [_serialize(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    return obj


def span_to_dict(span: Span) -> Dict[str, Any]:
    """Convert a span back to Zipkin v2 JSON keys."""
    return _serialize(span)


def render_json(spans: List[Span]) -> str:
    return json.dumps([span_to_dict(s) for s in spans], separators=(",", ":"))


def _describe(span: Optional[Span]) -> str:
    if span is None:
        return "(missing root)"
    parts = [span.id]
    if span.shared:
        parts.append("[shared]")
    service = span.local_service_name()
    if service:
        parts.append(service)
    if span.name:
        parts.append(span.name)
    return " ".join(parts)


def render_tree(root: Node[Span], indent: str = "  ") -> str:
    """Draw a tree one node per line, children indented under their parent."""
    lines: List[str] = []
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        lines.append(f"{indent * depth}{_describe(node.value)}")
        for child in reversed(node.children):
            stack.append((child, depth + 1))
    return "\n".join(lines) + "\n"

