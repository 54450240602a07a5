"""
Relevance Graph Layout - Where each memory sits on the canvas.

Memories are nodes; every id listed in a memory's `connections` is one
directed edge. The layout is a plain force simulation, recomputed from
scratch for each call:

- Start every node at a random spot inside the canvas (50-unit margin)
- 100 rounds of:
    * push apart any pair closer than 100 units (stronger when closer)
    * pull each node towards every node it lists (stronger when farther)
    * move, damp velocity by 0.9, keep the circle inside the canvas

Edges need not be mutual. If A lists B and B lists A, that is two edges and
two independent pulls; if only A lists B, only A is pulled.
"""

import math
import random
from typing import Iterable, List, Optional

import networkx as nx

from memlayer.models import GraphNode, Memory

ITERATIONS = 100
REPULSION_RADIUS = 100.0
REPULSION_STRENGTH = 0.005
ATTRACTION_STRENGTH = 0.0008
DAMPING = 0.9
MARGIN = 50.0
MIN_RADIUS = 12.0
RADIUS_PER_STRENGTH = 30.0


def node_radius(strength: float) -> float:
    return max(MIN_RADIUS, strength * RADIUS_PER_STRENGTH)


class GraphLayout:
    """Force-directed placement of one memory set.

    Usage:
        layout = GraphLayout(width=800, height=600, seed=7)
        nodes = layout.layout(memories, cluster_strength=1.0)
        hit = layout.node_at(120, 340)
    """

    def __init__(self, width: float = 800.0, height: float = 600.0, seed: Optional[int] = None):
        self.width = float(width)
        self.height = float(height)
        self.seed = seed
        self.nodes: List[GraphNode] = []
        self.graph = nx.DiGraph()

    def layout(self, memories: Iterable[Memory], cluster_strength: float = 1.0) -> List[GraphNode]:
        """Place exactly these memories. Nothing carries over from earlier calls.

        Args:
            memories: Memory snapshots to lay out
            cluster_strength: Scales how hard connected nodes pull together.
                At 0 the pull keeps its base strength.

        Returns:
            Positioned nodes, in input order
        """
        if memories is None:
            raise TypeError("layout() requires a memory list, got None")

        self.nodes = self.scatter(memories)
        self.graph = self._build_graph(self.nodes)

        pull = ATTRACTION_STRENGTH * (1.0 + max(0.0, cluster_strength))
        by_id = {node.id: node for node in self.nodes}

        for _ in range(ITERATIONS):
            for node in self.nodes:
                self._repel(node)
                for target_id, edge in self.graph[node.id].items():
                    self._attract(node, by_id[target_id], pull * edge["weight"])
                self._step(node)

        for node in self.nodes:
            self.graph.nodes[node.id]["x"] = node.x
            self.graph.nodes[node.id]["y"] = node.y
        return self.nodes

    def scatter(self, memories: Iterable[Memory]) -> List[GraphNode]:
        """Unrelaxed start positions. Same seed, same positions."""
        rng = random.Random(self.seed)
        return [
            GraphNode(
                memory=memory,
                x=rng.random() * (self.width - 2 * MARGIN) + MARGIN,
                y=rng.random() * (self.height - 2 * MARGIN) + MARGIN,
                radius=node_radius(memory.strength),
            )
            for memory in memories
        ]

    def edges(self) -> list:
        """(source_id, target_id) for every drawn connection."""
        return list(self.graph.edges)

    def node_at(self, x: float, y: float) -> Optional[Memory]:
        """The memory whose circle contains the point, if any."""
        for node in self.nodes:
            if node.contains(x, y):
                return node.memory
        return None

    def to_networkx(self) -> nx.DiGraph:
        return self.graph.copy()

    # =========================================================================
    # PHYSICS
    # =========================================================================

    @staticmethod
    def _build_graph(nodes: List[GraphNode]) -> nx.DiGraph:
        graph = nx.DiGraph()
        for node in nodes:
            graph.add_node(node.id, title=node.memory.title, radius=node.radius,
                           strength=node.memory.strength)
        for node in nodes:
            for target_id in node.connections:
                # Connections to memories outside this set are not drawn
                if target_id == node.id or not graph.has_node(target_id):
                    continue
                # Listing a connection twice pulls twice
                if graph.has_edge(node.id, target_id):
                    graph[node.id][target_id]["weight"] += 1
                else:
                    graph.add_edge(node.id, target_id, weight=1)
        return graph

    def _repel(self, node: GraphNode) -> None:
        for other in self.nodes:
            if other is node:
                continue
            dx = node.x - other.x
            dy = node.y - other.y
            distance = math.hypot(dx, dy)
            if 0 < distance < REPULSION_RADIUS:
                force = (REPULSION_RADIUS - distance) * REPULSION_STRENGTH
                node.vx += dx / distance * force
                node.vy += dy / distance * force

    @staticmethod
    def _attract(node: GraphNode, target: GraphNode, pull: float) -> None:
        dx = target.x - node.x
        dy = target.y - node.y
        distance = math.hypot(dx, dy)
        if distance == 0:
            return
        force = distance * pull
        node.vx += dx / distance * force
        node.vy += dy / distance * force

    def _step(self, node: GraphNode) -> None:
        node.x += node.vx
        node.y += node.vy
        node.vx *= DAMPING
        node.vy *= DAMPING
        node.x = max(node.radius, min(self.width - node.radius, node.x))
        node.y = max(node.radius, min(self.height - node.radius, node.y))


def layout(memories: Iterable[Memory], cluster_strength: float = 1.0,
           width: float = 800.0, height: float = 600.0, seed: Optional[int] = None) -> List[GraphNode]:
    """One-shot layout without keeping the GraphLayout around."""
    return GraphLayout(width, height, seed).layout(memories, cluster_strength)
