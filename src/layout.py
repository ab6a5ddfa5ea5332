"""
Layered (top-to-bottom) layout of a family tree snapshot.

The union graph from `graph.build_union_layout_graph` is laid out per weakly
connected component:

1. Cycles are broken by reversing DFS back edges (ranking only).
2. Ranks come from the longest path from the sources; loosely attached nodes
   such as partners are then pulled down next to their successors.
3. Edges spanning several ranks get virtual nodes, one per skipped rank.
4. Each rank is ordered by DFS discovery, then improved with alternating
   median sweeps, keeping the ordering with the fewest crossings.
5. x coordinates pack each rank with fixed separations and are then pulled
   toward the median of their neighbours without breaking those separations.

Components are placed left to right. Every tie is broken by snapshot order
(persons first, then family connectors), so the same snapshot always yields
the same layout.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Hashable

import networkx as nx

from graph import PERSON_NODE, build_union_layout_graph
from models import FamilyTree

logger = logging.getLogger("famtree.layout")

PERSON = "person"
CONNECTOR = "connector"


@dataclass(frozen=True)
class LayoutOptions:
    person_width: float = 180
    person_height: float = 80
    family_width: float = 20
    family_height: float = 20
    rank_sep: float = 80  # vertical gap between ranks
    node_sep: float = 40  # horizontal gap between nodes in a rank
    edge_sep: float = 20  # horizontal gap next to an edge passing through a rank
    margin_x: float = 20
    margin_y: float = 20
    component_sep: float = 40
    max_sweeps: int = 8
    alignment_passes: int = 4


@dataclass(frozen=True)
class LayoutNode:
    id: str
    node_type: str  # PERSON or CONNECTOR
    x: float  # top-left corner
    y: float
    width: float
    height: float
    rank: int
    order: int
    data: Any = field(compare=False)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


@dataclass(frozen=True)
class LayoutEdge:
    id: str
    source: str
    target: str
    edge_type: str


@dataclass(frozen=True)
class TreeLayout:
    nodes: tuple[LayoutNode, ...] = ()
    edges: tuple[LayoutEdge, ...] = ()
    width: float = 0.0
    height: float = 0.0

    def node(self, node_id: str) -> LayoutNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> dict:
        """Plain-data form for a rendering surface; payloads are referenced by id."""
        return {
            "width": self.width,
            "height": self.height,
            "nodes": [
                {
                    "id": n.id,
                    "type": n.node_type,
                    "position": {"x": n.x, "y": n.y},
                    "width": n.width,
                    "height": n.height,
                    "rank": n.rank,
                    "order": n.order,
                    "dataId": n.data.id,
                }
                for n in self.nodes
            ],
            "edges": [
                {"id": e.id, "source": e.source, "target": e.target, "type": e.edge_type}
                for e in self.edges
            ],
        }


def edge_id(source: str, target: str) -> str:
    return f"{source}->{target}"


@dataclass(frozen=True)
class _Virtual:
    """Bend point of an edge crossing an intermediate rank."""

    source: Hashable
    target: Hashable
    step: int


@dataclass
class _Component:
    layers: list[list[Hashable]]
    rank: dict[Hashable, int]
    x: dict[Hashable, float]
    width: float


def compute_layout(tree: FamilyTree, options: LayoutOptions | None = None) -> TreeLayout:
    """
    Position every person and family connector of a tree snapshot.

    Args:
        tree: The snapshot to lay out; dangling references are skipped
        options: Footprints and spacing constants

    Returns:
        A TreeLayout with one node per person, one connector node per family
        and one edge per partner/child link
    """
    options = options or LayoutOptions()
    G = build_union_layout_graph(tree, options)
    if G.number_of_nodes() == 0:
        return TreeLayout()

    index = {n: i for i, n in enumerate(G.nodes)}
    components = sorted(
        (sorted(c, key=index.__getitem__) for c in nx.weakly_connected_components(G)),
        key=lambda members: index[members[0]],
    )

    center_x: dict[Hashable, float] = {}
    rank: dict[Hashable, int] = {}
    order: dict[Hashable, int] = {}
    rank_height: dict[int, float] = defaultdict(float)

    offset = 0.0
    for members in components:
        comp = _layout_component(G, members, index, options)
        for layer in comp.layers:
            real = [n for n in layer if not isinstance(n, _Virtual)]
            for i, n in enumerate(real):
                center_x[n] = offset + comp.x[n]
                rank[n] = comp.rank[n]
                order[n] = i
                rank_height[comp.rank[n]] = max(rank_height[comp.rank[n]], G.nodes[n]["height"])
        offset += comp.width + options.component_sep

    center_y: dict[int, float] = {}
    y = options.margin_y
    for r in range(max(rank_height) + 1):
        center_y[r] = y + rank_height[r] / 2
        y += rank_height[r] + options.rank_sep

    nodes = []
    for n in G.nodes:
        data = G.nodes[n]
        w, h = data["width"], data["height"]
        nodes.append(
            LayoutNode(
                id=n,
                node_type=PERSON if data["node_type"] == PERSON_NODE else CONNECTOR,
                x=options.margin_x + center_x[n] - w / 2,
                y=center_y[rank[n]] - h / 2,
                width=w,
                height=h,
                rank=rank[n],
                order=order[n],
                data=data["record"],
            )
        )

    edges = tuple(
        LayoutEdge(id=edge_id(u, v), source=u, target=v, edge_type=d["edge_type"])
        for u, v, d in G.edges(data=True)
    )

    logger.debug(
        "Laid out tree %s: %d nodes, %d edges, %d components",
        tree.id, len(nodes), len(edges), len(components),
    )
    return TreeLayout(
        nodes=tuple(nodes),
        edges=edges,
        width=offset - options.component_sep + 2 * options.margin_x,
        height=y - options.rank_sep + options.margin_y,
    )


def _layout_component(
    G: nx.DiGraph, members: list, index: dict, options: LayoutOptions
) -> _Component:
    edges = _acyclic_edges(G, members)
    rank = _assign_ranks(members, edges, index)

    # Layered adjacency, with virtual nodes on long edges
    up: dict[Hashable, list] = {n: [] for n in members}
    down: dict[Hashable, list] = {n: [] for n in members}
    width: dict[Hashable, float] = {n: G.nodes[n]["width"] for n in members}
    for u, v in edges:
        prev = u
        for step in range(1, rank[v] - rank[u]):
            virtual = _Virtual(u, v, step)
            rank[virtual] = rank[u] + step
            up[virtual], down[virtual] = [], []
            width[virtual] = 0.0
            down[prev].append(virtual)
            up[virtual].append(prev)
            prev = virtual
        down[prev].append(v)
        up[v].append(prev)

    layers = _initial_order(members, rank, down)
    layers = _reduce_crossings(layers, up, down, options.max_sweeps)
    x = _assign_x(layers, up, down, width, options)

    left = min(x[n] - width[n] / 2 for n in x)
    right = max(x[n] + width[n] / 2 for n in x)
    for n in x:
        x[n] -= left
    return _Component(layers=layers, rank=rank, x=x, width=right - left)


def _acyclic_edges(G: nx.DiGraph, members: list) -> list[tuple]:
    """Edges of the component with DFS back edges reversed, duplicates dropped."""
    active, done = 1, 2
    state: dict[Hashable, int] = {}
    result = []
    for root in members:
        if root in state:
            continue
        state[root] = active
        stack = [(root, iter(G.successors(root)))]
        while stack:
            node, successors = stack[-1]
            for succ in successors:
                if succ == node:
                    continue
                seen = state.get(succ)
                if seen is None:
                    result.append((node, succ))
                    state[succ] = active
                    stack.append((succ, iter(G.successors(succ))))
                    break
                if seen == active:
                    logger.debug("Cycle through %s and %s, reversing for ranking", node, succ)
                    result.append((succ, node))
                else:
                    result.append((node, succ))
            else:
                state[node] = done
                stack.pop()
    return list(dict.fromkeys(result))


def _assign_ranks(members: list, edges: list[tuple], index: dict) -> dict[Hashable, int]:
    D = nx.DiGraph()
    D.add_nodes_from(members)
    D.add_edges_from(edges)
    topo = list(nx.lexicographical_topological_sort(D, key=index.__getitem__))

    rank: dict[Hashable, int] = {}
    for n in topo:
        rank[n] = max((rank[p] + 1 for p in D.predecessors(n)), default=0)

    # Pull a node down to just above its highest successor when it has no more
    # inbound than outbound edges and is the only successor of each predecessor,
    # e.g. a partner marrying into a deeper generation
    for n in reversed(topo):
        if D.out_degree(n) == 0 or D.in_degree(n) > D.out_degree(n):
            continue
        if all(D.out_degree(p) == 1 for p in D.predecessors(n)):
            rank[n] = min(rank[s] for s in D.successors(n)) - 1

    lowest = min(rank.values())
    return {n: r - lowest for n, r in rank.items()}


def _initial_order(members: list, rank: dict, down: dict) -> list[list]:
    layers: list[list] = [[] for _ in range(max(rank.values()) + 1)]
    seen = set()
    for root in members:
        stack = [root]
        while stack:
            n = stack.pop()
            if n in seen:
                continue
            seen.add(n)
            layers[rank[n]].append(n)
            stack.extend(reversed(down[n]))
    return layers


def _median(values: list[float]) -> float:
    values = sorted(values)
    mid = len(values) // 2
    if len(values) % 2:
        return values[mid]
    return (values[mid - 1] + values[mid]) / 2


def _positions(layers: list[list]) -> dict[Hashable, int]:
    return {n: i for layer in layers for i, n in enumerate(layer)}


def _count_crossings(layers: list[list], down: dict) -> int:
    pos = _positions(layers)
    total = 0
    for layer in layers[:-1]:
        pairs = sorted((pos[u], pos[v]) for u in layer for v in down[u])
        for i, (u1, v1) in enumerate(pairs):
            for u2, v2 in pairs[i + 1:]:
                if u1 < u2 and v1 > v2:
                    total += 1
    return total


def _reduce_crossings(layers: list[list], up: dict, down: dict, max_sweeps: int) -> list[list]:
    """
    Alternate downward and upward median sweeps.

    A node is keyed by the median position of its neighbours in the fixed
    rank; a node without such neighbours is keyed by its own index. The sort
    is stable, so equal keys keep their current order.
    """
    best = [list(layer) for layer in layers]
    best_crossings = _count_crossings(best, down)
    current = [list(layer) for layer in layers]

    for sweep in range(max_sweeps):
        if best_crossings == 0:
            break
        downward = sweep % 2 == 0
        neighbours = up if downward else down
        ranks = range(1, len(current)) if downward else range(len(current) - 2, -1, -1)
        pos = _positions(current)
        for r in ranks:
            layer = current[r]
            keys = {}
            for i, n in enumerate(layer):
                adjacent = [pos[m] for m in neighbours[n]]
                keys[n] = _median(adjacent) if adjacent else float(i)
            layer.sort(key=keys.__getitem__)
            for i, n in enumerate(layer):
                pos[n] = i

        crossings = _count_crossings(current, down)
        if crossings < best_crossings:
            best = [list(layer) for layer in current]
            best_crossings = crossings

    return best


def _assign_x(
    layers: list[list], up: dict, down: dict, width: dict, options: LayoutOptions
) -> dict[Hashable, float]:
    def sep(a, b) -> float:
        real = not isinstance(a, _Virtual) and not isinstance(b, _Virtual)
        gap = options.node_sep if real else options.edge_sep
        return (width[a] + width[b]) / 2 + gap

    x: dict[Hashable, float] = {}
    for layer in layers:
        cursor = 0.0
        for i, n in enumerate(layer):
            cursor = width[n] / 2 if i == 0 else cursor + sep(layer[i - 1], n)
            x[n] = cursor

    for p in range(options.alignment_passes):
        downward = p % 2 == 0
        neighbours = up if downward else down
        ranks = range(len(layers)) if downward else range(len(layers) - 1, -1, -1)
        for r in ranks:
            layer = layers[r]
            desired = [
                _median([x[m] for m in neighbours[n]]) if neighbours[n] else x[n]
                for n in layer
            ]
            left = list(desired)
            for i in range(1, len(layer)):
                left[i] = max(desired[i], left[i - 1] + sep(layer[i - 1], layer[i]))
            right = list(desired)
            for i in range(len(layer) - 2, -1, -1):
                right[i] = min(desired[i], right[i + 1] - sep(layer[i], layer[i + 1]))
            for n, a, b in zip(layer, left, right):
                x[n] = (a + b) / 2

    return x

