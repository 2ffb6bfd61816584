"""Span model: the Zipkin v2 shape consumed by the merge and tree code."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class Endpoint:
    """Network context of a node in the service graph."""

    service_name: Optional[str] = None
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    port: Optional[int] = None

    def merge(self, other: Endpoint) -> Endpoint:
        """Fill fields missing here from ``other``."""
        return Endpoint(
            service_name=self.service_name or other.service_name,
            ipv4=self.ipv4 or other.ipv4,
            ipv6=self.ipv6 or other.ipv6,
            port=self.port if self.port is not None else other.port,
        )


@dataclass(frozen=True, order=True)
class Annotation:
    timestamp: int
    value: str


@dataclass
class Span:
    """One leg of a traced operation.

    A client and a server can report the same ``id`` when they are two sides of
    one RPC; the server side is then flagged ``shared``.
    """

    trace_id: str
    id: str
    parent_id: Optional[str] = None
    kind: Optional[str] = None
    name: Optional[str] = None
    timestamp: Optional[int] = None
    duration: Optional[int] = None
    local_endpoint: Optional[Endpoint] = None
    remote_endpoint: Optional[Endpoint] = None
    annotations: list[Annotation] = field(default_factory=list)
    tags: dict[str, str] = field(default_factory=dict)
    debug: Optional[bool] = None
    shared: Optional[bool] = None

    def merge(self, other: Span) -> Span:
        """Return a new span combining this one with another part of it.

        Fields set here win; ``other`` only fills gaps. Tags are unioned with
        ``other`` overriding, annotations are unioned and sorted.
        """
        if other is None:
            raise ValueError("other must not be None")
        tags = dict(self.tags)
        tags.update(other.tags)
        annotations = sorted(set(self.annotations) | set(other.annotations))
        return replace(
            self,
            parent_id=self.parent_id or other.parent_id,
            kind=self.kind or other.kind,
            name=self.name if self.name and self.name != "unknown" else other.name or self.name,
            timestamp=self.timestamp or other.timestamp,
            duration=self.duration or other.duration,
            local_endpoint=_merge_endpoint(self.local_endpoint, other.local_endpoint),
            remote_endpoint=_merge_endpoint(self.remote_endpoint, other.remote_endpoint),
            annotations=annotations,
            tags=tags,
            debug=True if self.debug or other.debug else self.debug,
            shared=True if self.shared or other.shared else self.shared,
        )

    def local_service_name(self) -> Optional[str]:
        return self.local_endpoint.service_name if self.local_endpoint else None


def _merge_endpoint(left: Optional[Endpoint], right: Optional[Endpoint]) -> Optional[Endpoint]:
    if left is None:
        return right
    if right is None:
        return left
    return left.merge(right)
