from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from studyai.schemas.study import MindMapEdge


# ── Request ──────────────────────────────────────────────────────────────────

class LayoutRequest(BaseModel):
    """Raw edges to lay out, optionally followed by edges from an expansion."""
    model_config = ConfigDict(populate_by_name=True)

    edges: List[MindMapEdge]
    new_edges: List[MindMapEdge] = Field(default=[], alias="newEdges")


# ── Response ─────────────────────────────────────────────────────────────────

class Position(BaseModel):
    x: float
    y: float


class GraphNode(BaseModel):
    """A positioned mind-map node. `position` is the top-left corner."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    index: int
    rank: int
    position: Position
    width: int
    height: int
    is_root: bool = Field(default=False, alias="isRoot")


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str = "smoothstep"
    animated: bool = True


class MindMapGraph(BaseModel):
    """Renderable graph derived from the accumulated edge list."""
    nodes: List[GraphNode] = []
    edges: List[GraphEdge] = []
