"""
Pytest configuration and Hypothesis strategies for property-based testing.

This module provides custom Hypothesis strategies for generating spans, span
parts reported by several hosts, and tree builder entries.
"""

from hypothesis import strategies as st

from trace_tree.model import Annotation, Endpoint, Span

# ============================================================================
# Basic Building Blocks
# ============================================================================


@st.composite
def hex_id(draw, length: int = 16) -> str:
    """
    Generate a valid hexadecimal ID string.

    Args:
        length: Number of hex characters (default 16 for span id, 32 for trace id)

    Returns:
        Hexadecimal string of specified length
    """
    hex_chars = "0123456789abcdef"
    return "".join(draw(st.lists(st.sampled_from(hex_chars), min_size=length, max_size=length)))


# A handful of hosts so that generated spans collide on endpoint.
ENDPOINTS = [
    Endpoint(service_name="frontend", ipv4="10.0.0.1"),
    Endpoint(service_name="frontend", ipv4="10.0.0.1", port=8080),
    Endpoint(service_name="backend", ipv4="10.0.0.2"),
    Endpoint(service_name="backend", ipv6="2001:db8::c001"),
    Endpoint(ipv4="10.0.0.3"),
]


def endpoint():
    """Optional endpoint drawn from a small pool."""
    return st.none() | st.sampled_from(ENDPOINTS)


# ============================================================================
# Span Strategies
# ============================================================================


@st.composite
def zipkin_span(
    draw,
    trace_id: str | None = None,
    span_ids: list[str] | None = None,
) -> Span:
    """
    Generate a span whose id and parent id come from a small pool.

    Args:
        trace_id: Trace ID to use (if None, generates a 16 or 32 char one)
        span_ids: Pool of ids; small pools give duplicate parts and shared spans

    Returns:
        A Span
    """
    if trace_id is None:
        trace_id = draw(st.sampled_from(["000000000000000a", "000000000000000b000000000000000a"]))
    if span_ids is None:
        span_ids = ["0000000000000001", "0000000000000002", "0000000000000003"]

    span_id = draw(st.sampled_from(span_ids))
    parent_id = draw(st.none() | st.sampled_from(span_ids))
    annotations = draw(
        st.lists(
            st.builds(
                Annotation,
                timestamp=st.integers(min_value=1, max_value=10),
                value=st.sampled_from(["cs", "sr", "ss", "cr"]),
            ),
            max_size=2,
        )
    )
    tags = draw(
        st.dictionaries(
            st.sampled_from(["http.path", "http.method", "error"]),
            st.text(min_size=1, max_size=5),
            max_size=2,
        )
    )
    return Span(
        trace_id=trace_id,
        id=span_id,
        parent_id=parent_id,
        name=draw(st.none() | st.sampled_from(["get", "post"])),
        timestamp=draw(st.none() | st.integers(min_value=1, max_value=1000)),
        duration=draw(st.none() | st.integers(min_value=1, max_value=1000)),
        local_endpoint=draw(endpoint()),
        annotations=sorted(annotations),
        tags=tags,
        shared=draw(st.sampled_from([None, False, True])),
    )


@st.composite
def span_parts(draw, min_size: int = 0, max_size: int = 12) -> list[Span]:
    """
    Generate the raw spans of one trace as a collector would receive them:
    duplicated parts, shared ids, self references and mixed trace id lengths.
    """
    return draw(st.lists(zipkin_span(), min_size=min_size, max_size=max_size))


# ============================================================================
# Tree Builder Strategies
# ============================================================================


@st.composite
def tree_entries(draw, max_size: int = 15) -> list[tuple]:
    """
    Generate arbitrary (parent_id, id, shared, value) entries.

    Ids come from a tiny alphabet so duplicates, missing parents, extra roots
    and self references are all common.
    """
    ids = st.sampled_from(["a", "b", "c", "d", "e"])
    entries = draw(
        st.lists(
            st.tuples(
                st.none() | ids,
                ids,
                st.sampled_from([None, False, True]),
            ),
            max_size=max_size,
        )
    )
    return [(parent_id, id_, shared, f"v{i}") for i, (parent_id, id_, shared) in enumerate(entries)]


@st.composite
def well_formed_tree(draw, max_size: int = 20) -> list[tuple]:
    """
    Generate entries of a tree with unique ids where every parent precedes its
    children and the first entry is the only root.

    Returns:
        List of (parent_id, id, None, value) entries
    """
    size = draw(st.integers(min_value=1, max_value=max_size))
    entries = [(None, "0", None, "v0")]
    for i in range(1, size):
        parent = draw(st.integers(min_value=0, max_value=i - 1))
        entries.append((str(parent), str(i), None, f"v{i}"))
    return entries
