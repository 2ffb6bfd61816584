"""Trace tree reconstruction and span merging for Zipkin-style traces."""

from trace_tree.merge import merge_trace
from trace_tree.model import Annotation, Endpoint, Span
from trace_tree.node import Node, TreeBuilder, first_not_null
from trace_tree.tree import build_tree

__version__ = "0.1.0"

__all__ = [
    "Annotation",
    "Endpoint",
    "Node",
    "Span",
    "TreeBuilder",
    "build_tree",
    "first_not_null",
    "merge_trace",
]
