import logging
from typing import Dict, List, Sequence, Set, Tuple

import networkx as nx

from studyai.graph.layout import NODE_HEIGHT, NODE_WIDTH, layered_layout
from studyai.schemas.mindmap import GraphEdge, GraphNode, MindMapGraph, Position
from studyai.schemas.study import MindMapEdge

logger = logging.getLogger(__name__)


def label_key(label: str) -> str:
    """Identity of a label: whitespace collapsed and lower-cased."""
    return " ".join(label.split()).lower()


def normalize_label(label: str) -> str:
    """Node id of a label: its key with spaces → '_'."""
    return label_key(label).replace(" ", "_")


def _unique_id(node_id: str, taken: Set[str]) -> str:
    # "a b" and "a_b" are different labels; later ones get a numeric suffix
    if node_id not in taken:
        return node_id
    n = 2
    while f"{node_id}_{n}" in taken:
        n += 1
    return f"{node_id}_{n}"


def build(edges: Sequence[MindMapEdge]) -> MindMapGraph:
    """
    Full rebuild from an edge list.
    Node ids derive from labels only, so the same label always maps to the
    same node, and ids are assigned in first-seen order so they stay stable
    across merges. Edge ids are positional ("e0", "e1", ...) and change when
    the list changes.
    """
    graph = nx.DiGraph()
    ids: Dict[str, str] = {}
    labels: Dict[str, str] = {}
    links: List[Tuple[str, str]] = []

    for edge in edges:
        ends = []
        for raw in (edge.source, edge.target):
            key = label_key(raw)
            if not key:
                raise ValueError("mind map labels cannot be blank")
            if key not in ids:
                node_id = _unique_id(normalize_label(raw), set(labels))
                ids[key] = node_id
                labels[node_id] = " ".join(raw.split())
                graph.add_node(node_id)
            node_id = ids[key]
            ends.append(node_id)
        graph.add_edge(ends[0], ends[1])
        links.append((ends[0], ends[1]))

    order = list(labels)
    placements = layered_layout(graph, order)

    nodes = [
        GraphNode(
            id=node_id,
            label=labels[node_id],
            index=i,
            rank=placements[node_id].rank,
            position=Position(x=placements[node_id].x, y=placements[node_id].y),
            width=NODE_WIDTH,
            height=NODE_HEIGHT,
            is_root=i == 0,
        )
        for i, node_id in enumerate(order)
    ]
    graph_edges = [
        GraphEdge(id=f"e{i}", source=source, target=target)
        for i, (source, target) in enumerate(links)
    ]

    logger.info(f"[GRAPH] ✓ Built {len(nodes)} nodes, {len(graph_edges)} edges")
    return MindMapGraph(nodes=nodes, edges=graph_edges)


def merge(existing: Sequence[MindMapEdge], new: Sequence[MindMapEdge]) -> MindMapGraph:
    """Rebuild from the accumulated list; labels already present are reused."""
    return build(list(existing) + list(new))
