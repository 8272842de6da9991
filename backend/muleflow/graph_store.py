"""
graph_store.py – Generic directed multigraph addressed by integer handles.

Layout
------
Nodes live in a growable list; a node's handle is its index in that list, so
handles are dense, stable and never reused (there is no removal).

Edges are keyed by the ordered pair ``(source, target)``.  The value is a
*bucket*: a list to which every ``add_edge`` call appends.  Parallel
transfers between the same pair are therefore all kept and can be counted
individually.

Adjacency is held twice, once per direction, as one dict per node mapping
neighbour handle → bucket.  The dicts share the bucket objects with the
edge table, so walking a node's outgoing or incoming edges costs
O(degree) and needs no lookup in the global edge table.
"""
from __future__ import annotations

import logging
from typing import Dict, Generic, Iterator, List, Set, Tuple, TypeVar

import networkx as nx

log = logging.getLogger(__name__)

N = TypeVar("N")
W = TypeVar("W")


class UnknownHandleError(IndexError):
    """Raised when a handle does not refer to a node in the store."""

    def __init__(self, handle: object, node_count: int):
        super().__init__(f"Unknown node handle {handle!r} (store holds {node_count} nodes)")
        self.handle = handle


class GraphStore(Generic[N, W]):
    """Build-once, read-many directed graph with appendable edge buckets."""

    def __init__(self) -> None:
        self._nodes: List[N] = []
        self._edges: Dict[Tuple[int, int], List[W]] = {}
        self._succ: List[Dict[int, List[W]]] = []
        self._pred: List[Dict[int, List[W]]] = []
        self._weight_count = 0

    # ── Mutation ──────────────────────────────────────────────────────────────
    def add_node(self, payload: N) -> int:
        """Store ``payload`` under a fresh handle and return the handle."""
        handle = len(self._nodes)
        self._nodes.append(payload)
        self._succ.append({})
        self._pred.append({})
        return handle

    def add_edge(self, source: int, target: int, weight: W) -> None:
        """Append ``weight`` to the bucket for ``source → target``."""
        self._check(source)
        self._check(target)
        bucket = self._succ[source].get(target)
        if bucket is None:
            bucket = []
            self._edges[(source, target)] = bucket
            self._succ[source][target] = bucket
            self._pred[target][source] = bucket
        bucket.append(weight)
        self._weight_count += 1

    # ── Lookup ────────────────────────────────────────────────────────────────
    def has_node(self, handle: int) -> bool:
        return isinstance(handle, int) and not isinstance(handle, bool) and 0 <= handle < len(self._nodes)

    def has_edge(self, source: int, target: int) -> bool:
        return (source, target) in self._edges

    def node(self, handle: int) -> N:
        self._check(handle)
        return self._nodes[handle]

    def nodes(self) -> Iterator[Tuple[int, N]]:
        return iter(enumerate(self._nodes))

    def successors(self, handle: int) -> Set[int]:
        self._check(handle)
        return set(self._succ[handle])

    def predecessors(self, handle: int) -> Set[int]:
        self._check(handle)
        return set(self._pred[handle])

    def edge_weights(self, source: int, target: int) -> Tuple[W, ...]:
        """All weights appended for ``source → target``, oldest first."""
        self._check(source)
        self._check(target)
        return tuple(self._edges.get((source, target), ()))

    def out_edges(self, handle: int) -> Iterator[Tuple[int, List[W]]]:
        """Yield ``(target, bucket)`` for every outgoing edge.  Buckets are live; do not mutate."""
        self._check(handle)
        return iter(self._succ[handle].items())

    def in_edges(self, handle: int) -> Iterator[Tuple[int, List[W]]]:
        """Yield ``(source, bucket)`` for every incoming edge.  Buckets are live; do not mutate."""
        self._check(handle)
        return iter(self._pred[handle].items())

    def edges(self) -> Iterator[Tuple[int, int, List[W]]]:
        for (source, target), bucket in self._edges.items():
            yield source, target, bucket

    # ── Size ──────────────────────────────────────────────────────────────────
    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        """Number of distinct ordered pairs."""
        return len(self._edges)

    def weight_count(self) -> int:
        """Number of appended weights across all buckets."""
        return self._weight_count

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, handle: object) -> bool:
        return self.has_node(handle)  # type: ignore[arg-type]

    # ── Export ────────────────────────────────────────────────────────────────
    def to_networkx(self, amount_of=None) -> nx.DiGraph:
        """
        Collapse buckets into a simple ``networkx.DiGraph``.

        Every edge gets ``tx_count`` (bucket size).  When ``amount_of`` is
        given it is called on each weight and the results are summed into
        ``total_amount``.
        """
        G = nx.DiGraph()
        G.add_nodes_from(range(len(self._nodes)))
        if amount_of is None:
            G.add_edges_from(
                (u, v, {"tx_count": len(bucket)}) for u, v, bucket in self.edges()
            )
        else:
            G.add_edges_from(
                (u, v, {
                    "tx_count": len(bucket),
                    "total_amount": sum(amount_of(w) for w in bucket),
                })
                for u, v, bucket in self.edges()
            )
        log.debug("Exported %d nodes, %d edges to networkx", G.number_of_nodes(), G.number_of_edges())
        return G

    # ── Internal ──────────────────────────────────────────────────────────────
    def _check(self, handle: int) -> None:
        if not self.has_node(handle):
            raise UnknownHandleError(handle, len(self._nodes))
