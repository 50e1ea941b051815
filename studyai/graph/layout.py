"""
StudyAI — Layered Layout
=========================
Top-to-bottom hierarchical layout for mind maps:
  1. cycle breaking  — DFS back-edges are ignored for ranking (still rendered)
  2. ranking         — longest path from the sources
  3. ordering        — barycenter sweeps, best crossing count wins
  4. coordinates     — each rank centered, top-left corners reported

Deterministic: every traversal follows the first-seen order of the labels.
"""

import logging
from typing import Dict, List, NamedTuple, Set, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

NODE_WIDTH = 180
NODE_HEIGHT = 60
RANK_SEP = 50
NODE_SEP = 50
SWEEPS = 8

Edge = Tuple[str, str]


class Placement(NamedTuple):
    rank: int
    x: float
    y: float


def find_back_edges(graph: nx.DiGraph, order: List[str]) -> Set[Edge]:
    """Edges closing a cycle, found by an iterative DFS in `order`."""
    on_stack: Set[str] = set()
    done: Set[str] = set()
    back: Set[Edge] = set()

    for start in order:
        if start in done:
            continue
        stack = [(start, iter(graph.successors(start)))]
        on_stack.add(start)
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                on_stack.discard(node)
                done.add(node)
            elif child in on_stack:
                back.add((node, child))
            elif child not in done:
                on_stack.add(child)
                stack.append((child, iter(graph.successors(child))))
    return back


def assign_ranks(graph: nx.DiGraph, order: List[str], back_edges: Set[Edge]) -> Dict[str, int]:
    index = {node: i for i, node in enumerate(order)}
    dag = nx.DiGraph()
    dag.add_nodes_from(order)
    dag.add_edges_from(e for e in graph.edges if e not in back_edges)

    ranks: Dict[str, int] = {}
    for node in nx.lexicographical_topological_sort(dag, key=index.__getitem__):
        ranks[node] = max((ranks[p] + 1 for p in dag.predecessors(node)), default=0)
    return ranks


def _positions(layers: List[List[str]]) -> Dict[str, float]:
    pos = {}
    for layer in layers:
        mid = (len(layer) - 1) / 2
        for i, node in enumerate(layer):
            pos[node] = i - mid
    return pos


def count_crossings(layers: List[List[str]], edges: List[Edge], ranks: Dict[str, int]) -> int:
    """Crossings between edges joining adjacent ranks."""
    pos = _positions(layers)
    by_rank: Dict[int, List[Tuple[float, float]]] = {}
    for u, v in edges:
        if ranks[u] > ranks[v]:
            u, v = v, u
        if ranks[v] - ranks[u] == 1:
            by_rank.setdefault(ranks[u], []).append((pos[u], pos[v]))

    crossings = 0
    for segs in by_rank.values():
        for i, (a1, b1) in enumerate(segs):
            for a2, b2 in segs[i + 1:]:
                if (a1 - a2) * (b1 - b2) < 0:
                    crossings += 1
    return crossings


def order_layers(graph: nx.DiGraph, order: List[str], ranks: Dict[str, int]) -> List[List[str]]:
    index = {node: i for i, node in enumerate(order)}
    layers: List[List[str]] = [[] for _ in range(max(ranks.values()) + 1)]
    for node in order:
        layers[ranks[node]].append(node)

    edges = [(u, v) for u, v in graph.edges if u != v and ranks[u] != ranks[v]]
    above: Dict[str, List[str]] = {n: [] for n in order}
    below: Dict[str, List[str]] = {n: [] for n in order}
    for u, v in edges:
        if ranks[u] > ranks[v]:
            u, v = v, u
        below[u].append(v)
        above[v].append(u)

    best = [list(layer) for layer in layers]
    best_crossings = count_crossings(best, edges, ranks)

    for sweep in range(SWEEPS):
        if best_crossings == 0:
            break
        downward = sweep % 2 == 0
        neighbours = above if downward else below
        sequence = range(1, len(layers)) if downward else range(len(layers) - 2, -1, -1)
        for r in sequence:
            pos = _positions(layers)

            def barycenter(node: str) -> Tuple[float, float, int]:
                linked = neighbours[node]
                center = sum(pos[m] for m in linked) / len(linked) if linked else pos[node]
                return center, pos[node], index[node]

            layers[r] = sorted(layers[r], key=barycenter)

        crossings = count_crossings(layers, edges, ranks)
        if crossings < best_crossings:
            best = [list(layer) for layer in layers]
            best_crossings = crossings

    return best


def layered_layout(graph: nx.DiGraph, order: List[str]) -> Dict[str, Placement]:
    """Place every node of `graph`; `order` is the first-seen node order."""
    if not order:
        return {}

    back_edges = find_back_edges(graph, order)
    ranks = assign_ranks(graph, order, back_edges)
    layers = order_layers(graph, order, ranks)

    centers: Dict[str, Tuple[float, float]] = {}
    for r, layer in enumerate(layers):
        mid = (len(layer) - 1) / 2
        for i, node in enumerate(layer):
            centers[node] = (
                (i - mid) * (NODE_WIDTH + NODE_SEP),
                r * (NODE_HEIGHT + RANK_SEP) + NODE_HEIGHT / 2,
            )

    shift = min(cx for cx, _ in centers.values()) - NODE_WIDTH / 2
    if back_edges:
        logger.info(f"[GRAPH] Ignored {len(back_edges)} back-edge(s) for ranking")

    return {
        node: Placement(
            rank=ranks[node],
            x=cx - shift - NODE_WIDTH / 2,
            y=cy - NODE_HEIGHT / 2,
        )
        for node, (cx, cy) in centers.items()
    }
