"""
Relevance Graph Layout Tests

Seeded, so every run places the nodes identically.
"""

import math

import networkx as nx
import pytest

from memlayer.layout import GraphLayout, layout, node_radius
from memlayer.models import Memory


def memory(memory_id, connections=(), strength=0.5):
    return Memory(id=memory_id, title=f"Memory {memory_id}", content="c", tags=["t"],
                  connections=list(connections), strength=strength)


def distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


def seed_with_separation(pair, low, high):
    """First seed whose start positions put the pair between low and high apart."""
    for seed in range(1000):
        start = GraphLayout(width=2000, height=1500, seed=seed).scatter(pair)
        if low <= distance(start[0], start[1]) < high:
            return seed
    raise AssertionError(f"no seed places the pair {low}-{high} apart")


class TestAttraction:

    @pytest.mark.parametrize("low,high", [(300, 800), (800, 1500), (1500, 2400)])
    def test_connected_pair_ends_closer_at_zero_cluster_strength(self, low, high):
        pair = [memory("a", ["b"]), memory("b", ["a"])]
        seed = seed_with_separation(pair, low, high)
        graph = GraphLayout(width=2000, height=1500, seed=seed)
        start = graph.scatter(pair)
        end = graph.layout(pair, cluster_strength=0)

        assert distance(end[0], end[1]) < distance(start[0], start[1])

    def test_one_way_connection_still_attracts(self):
        pair = [memory("a", ["b"]), memory("b")]
        seed = seed_with_separation(pair, 400, 1200)
        graph = GraphLayout(width=2000, height=1500, seed=seed)
        start = graph.scatter(pair)
        end = graph.layout(pair, cluster_strength=0)

        assert distance(end[0], end[1]) < distance(start[0], start[1])
        # only the listing node moves
        assert (end[1].x, end[1].y) == pytest.approx((start[1].x, start[1].y))

    def test_stronger_clustering_pulls_closer(self):
        pair = [memory("a", ["b"]), memory("b", ["a"])]
        seed = seed_with_separation(pair, 300, 800)
        loose = GraphLayout(width=2000, height=1500, seed=seed).layout(pair, cluster_strength=0)
        tight = GraphLayout(width=2000, height=1500, seed=seed).layout(pair, cluster_strength=5)

        assert distance(tight[0], tight[1]) < distance(loose[0], loose[1])

    def test_connection_listed_twice_pulls_twice(self):
        single = [memory("a", ["b"]), memory("b")]
        double = [memory("a", ["b", "b"]), memory("b")]
        seed = seed_with_separation(single, 1500, 2400)

        once = GraphLayout(width=2000, height=1500, seed=seed).layout(single, cluster_strength=0)
        graph = GraphLayout(width=2000, height=1500, seed=seed)
        twice = graph.layout(double, cluster_strength=0)

        assert distance(twice[0], twice[1]) < distance(once[0], once[1])
        assert graph.edges() == [("a", "b")]
        assert graph.to_networkx()["a"]["b"]["weight"] == 2

    def test_unconnected_nodes_beyond_repulsion_radius_stay_put(self):
        pair = [memory("a"), memory("b")]
        seed = seed_with_separation(pair, 200, 2400)
        graph = GraphLayout(width=2000, height=1500, seed=seed)
        start = graph.scatter(pair)
        end = graph.layout(pair, cluster_strength=1)

        for before, after in zip(start, end):
            assert (after.x, after.y) == pytest.approx((before.x, before.y))


class TestBounds:

    @pytest.mark.parametrize("cluster_strength", [0, 1, 10])
    def test_nodes_stay_on_canvas(self, sample_memories, cluster_strength):
        graph = GraphLayout(width=400, height=300, seed=42)
        for node in graph.layout(sample_memories, cluster_strength):
            assert node.radius <= node.x <= 400 - node.radius
            assert node.radius <= node.y <= 300 - node.radius

    def test_crowded_canvas(self):
        crowd = [memory(str(i), [str((i + 1) % 30)]) for i in range(30)]
        for node in layout(crowd, 2.0, width=200, height=200, seed=0):
            assert node.radius <= node.x <= 200 - node.radius
            assert node.radius <= node.y <= 200 - node.radius

    def test_radius_from_strength(self):
        assert node_radius(0.9) == pytest.approx(27.0)
        assert node_radius(0.2) == 12.0
        assert node_radius(0.0) == 12.0


class TestGraph:

    def test_edges_follow_listed_connections(self, sample_memories):
        graph = GraphLayout(seed=1)
        graph.layout(sample_memories, 1.0)
        edges = set(graph.edges())

        assert ("1", "2") in edges
        assert ("2", "1") in edges
        assert ("3", "4") in edges
        assert len(edges) == 10

    def test_connections_outside_the_set_ignored(self):
        graph = GraphLayout(seed=1)
        graph.layout([memory("a", ["b", "zzz"]), memory("b")], 1.0)
        assert graph.edges() == [("a", "b")]

    def test_to_networkx_has_positions(self, sample_memories):
        graph = GraphLayout(seed=1)
        nodes = graph.layout(sample_memories, 1.0)
        digraph = graph.to_networkx()

        assert isinstance(digraph, nx.DiGraph)
        assert digraph.nodes["1"]["x"] == nodes[0].x
        assert digraph.number_of_edges() == 10

    def test_fresh_layout_each_call(self, sample_memories):
        graph = GraphLayout(seed=9)
        graph.layout(sample_memories, 1.0)
        nodes = graph.layout(sample_memories[:2], 1.0)

        assert [n.id for n in nodes] == ["1", "2"]
        assert graph.edges() in ([("1", "2"), ("2", "1")], [("2", "1"), ("1", "2")])

    def test_same_seed_same_layout(self, sample_memories):
        first = GraphLayout(seed=5).layout(sample_memories, 1.0)
        second = GraphLayout(seed=5).layout(sample_memories, 1.0)
        assert [(n.x, n.y) for n in first] == [(n.x, n.y) for n in second]

    def test_empty_set(self):
        graph = GraphLayout(seed=1)
        assert graph.layout([], 1.0) == []
        assert graph.node_at(10, 10) is None

    def test_none_rejected(self):
        with pytest.raises(TypeError):
            GraphLayout().layout(None, 1.0)


class TestHitTest:

    def test_point_inside_node(self, sample_memories):
        graph = GraphLayout(seed=2)
        nodes = graph.layout(sample_memories, 1.0)
        target = nodes[3]

        hit = graph.node_at(target.x + target.radius / 2, target.y)
        assert hit is not None
        assert hit.id in {n.id for n in nodes if n.contains(target.x + target.radius / 2, target.y)}

    def test_point_outside_every_node(self):
        graph = GraphLayout(width=800, height=600, seed=2)
        graph.layout([memory("a")], 1.0)
        node = graph.nodes[0]
        far_x = 0 if node.x > 400 else 800
        assert graph.node_at(far_x, node.y) is None
