"""
Layered graph layout using networkx.

The engine follows the classic layered pipeline:

1. Cycle breaking guided by a weighted greedy feedback arc set ordering
2. Longest path ranking with per-edge minimum lengths
3. Normalisation: dummy chains for long edges, label slots, group fillers
4. Crossing reduction by barycenter sweeps with group contiguity
5. Horizontal coordinates from a min-cost flow (network simplex) dual
6. Vertical coordinates from rank heights and group padding
7. Raw edge polylines through the dummy chains

Uses networkx for:
- Graph representation and reachability checks
- Lexicographic topological sorting
- Network simplex and Bellman-Ford for the coordinate assignment

Every call works on fresh state, so one LayeredLayout instance can be shared.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional, Sequence, Set, Tuple

import networkx as nx

from .models import EdgeKind, GroupSpec, Point, SizedEdge, SizedNode, Spacing
from .router import NodeRect

SWEEP_ITERATIONS = 4
# Coordinates are solved in hundredths so the flow problem stays integral.
COORD_SCALE = 100
ALIGN_SCALE = 8
# Alignment cost of a chain segment by number of dummy endpoints.
SEGMENT_COSTS = (1, 2, 8)
GROUP_COMPACTION_COST = 1
SELF_LOOP_LABEL_GAP = 4.0
EPSILON = 1e-9

NODE = "node"
DUMMY = "dummy"
LABEL = "label"
FILLER = "filler"
PLACEHOLDER = "placeholder"


class LayoutError(Exception):
    """Raised when a graph cannot be laid out."""


class StructuralError(LayoutError):
    """Raised when edges or groups reference nodes that do not exist."""


@dataclass
class RawLayout:
    """
    Engine output before orthogonal snapping and group assembly.

    Attributes:
        centers: Node id -> centre point.
        ranks: Node id -> rank (0 is the top rank).
        edge_paths: Real edge index -> centre-to-centre polyline, source first.
        reversed_edges: Indexes of edges laid out against their direction.
        label_anchors: Edge index -> centre of its reserved label box.
        placeholders: Empty group id -> the box reserved inside it.
    """

    centers: Dict[str, Point] = field(default_factory=dict)
    ranks: Dict[str, int] = field(default_factory=dict)
    edge_paths: Dict[int, List[Point]] = field(default_factory=dict)
    reversed_edges: Set[int] = field(default_factory=set)
    label_anchors: Dict[int, Point] = field(default_factory=dict)
    placeholders: Dict[str, NodeRect] = field(default_factory=dict)


@dataclass
class _Item:
    """One slot in a rank: a node, a dummy, a group filler or a placeholder."""

    key: Hashable
    rank: int
    width: float
    height: float
    kind: str
    path: Tuple[str, ...] = ()
    extra: float = 0.0

    @property
    def is_dummy(self) -> bool:
        return self.kind in (DUMMY, LABEL, FILLER)


@dataclass
class _Segment:
    upper: Hashable
    lower: Hashable
    weight: float


class LayeredLayout:
    """
    Layered layout engine.

    The engine only sees sizes and relations. It returns node centres and raw
    polylines; snapping, clipping and group rectangles are left to the
    geometry adapter in positioning.py.
    """

    def __init__(self, sweep_iterations: int = SWEEP_ITERATIONS):
        self.sweep_iterations = sweep_iterations

    def assign_ranks_and_coordinates(
        self,
        nodes: Sequence[SizedNode],
        edges: Sequence[SizedEdge],
        spacing: Spacing,
        groups: Optional[Sequence[GroupSpec]] = None,
    ) -> RawLayout:
        """
        Compute node centres and raw edge polylines.

        Args:
            nodes: Sized nodes.
            edges: Real and ordering edges.
            spacing: Spacing parameters.
            groups: Optional group forest.

        Returns:
            RawLayout for the graph.

        Raises:
            StructuralError: If an edge or group names an unknown node.
            LayoutError: If the coordinate constraints cannot be satisfied.
        """
        if not nodes:
            return RawLayout()
        run = _LayoutRun(nodes, edges, spacing, groups or [], self.sweep_iterations)
        return run.execute()


class _LayoutRun:
    """State of a single layout call."""

    def __init__(
        self,
        nodes: Sequence[SizedNode],
        edges: Sequence[SizedEdge],
        spacing: Spacing,
        groups: Sequence[GroupSpec],
        sweep_iterations: int,
    ):
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.spacing = spacing
        self.groups = list(groups)
        self.sweep_iterations = sweep_iterations

        self.graph = nx.DiGraph()
        self.node_index: Dict[str, int] = {}
        self.node_by_id: Dict[str, SizedNode] = {}
        self.node_paths: Dict[str, Tuple[str, ...]] = {}
        self.group_order: List[str] = []
        self.group_paths: Dict[str, Tuple[str, ...]] = {}
        self.group_specs: Dict[str, GroupSpec] = {}
        self.self_loops: List[int] = []
        self.loop_slots: Dict[int, Tuple[float, int]] = {}
        self.loop_counts: Dict[str, int] = {}

        self.rank_arcs: Dict[Tuple[str, str], int] = {}
        self.oriented: Dict[int, Tuple[str, str]] = {}
        self.reversed: Set[int] = set()
        self.ranks: Dict[str, int] = {}

        self.items: Dict[Hashable, _Item] = {}
        self.layers: List[List[Hashable]] = []
        self.chains: Dict[int, List[Hashable]] = {}
        self.segments: List[_Segment] = []
        self.up: Dict[Hashable, List[Tuple[Hashable, float]]] = {}
        self.down: Dict[Hashable, List[Tuple[Hashable, float]]] = {}
        self.group_span: Dict[str, Tuple[int, int]] = {}
        self.placeholder_keys: Dict[str, Hashable] = {}

        self.x: Dict[Hashable, float] = {}
        self.rank_y: Dict[int, float] = {}
        self.rank_height: Dict[int, float] = {}
        self.next_rank: Dict[int, int] = {}

    def execute(self) -> RawLayout:
        self._register()
        self._break_cycles()
        self._assign_ranks()
        self._build_items()
        self._order()
        self._assign_x()
        self._assign_y()
        return self._emit()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def _register(self) -> None:
        for node in self.nodes:
            if node.id in self.node_index:
                raise StructuralError(f"Duplicate node id: {node.id!r}")
            self.node_index[node.id] = len(self.node_index)
            self.node_by_id[node.id] = node
            self.graph.add_node(node.id)

        for index, edge in enumerate(self.edges):
            for endpoint in (edge.source, edge.target):
                self._require_node(
                    endpoint, f"Edge {index} ({edge.source} -> {edge.target})"
                )
            if edge.source == edge.target and edge.kind is EdgeKind.REAL:
                self.self_loops.append(index)

        for group in self.groups:
            self._register_group(group, ())

    def _register_group(self, group: GroupSpec, parent_path: Tuple[str, ...]) -> None:
        if group.id in self.group_paths:
            raise StructuralError(f"Duplicate group id: {group.id!r}")
        path = parent_path + (group.id,)
        self.group_paths[group.id] = path
        self.group_specs[group.id] = group
        self.group_order.append(group.id)
        for member in group.member_ids:
            self._require_node(member, f"Group {group.id!r}")
            # A node listed in several groups belongs to the first one seen.
            self.node_paths.setdefault(member, path)
        for child in group.children:
            self._register_group(child, path)

    def _require_node(self, node_id: str, context: str) -> None:
        try:
            self.graph.nodes[node_id]
        except KeyError as exc:
            raise StructuralError(
                f"{context} references unknown node {node_id!r}"
            ) from exc

    # ------------------------------------------------------------------
    # Cycle breaking
    # ------------------------------------------------------------------

    def _break_cycles(self) -> None:
        """
        Orient every edge so that the rank graph is acyclic.

        Ordering edges are added first and only reversed if they close a cycle
        among themselves. Real edges then take the direction suggested by the
        feedback arc set ordering, unless that would close a cycle.
        """
        fas_position = self._greedy_fas_order()
        dag = nx.DiGraph()
        dag.add_nodes_from(self.node_index)

        for edge in self.edges:
            if edge.kind is not EdgeKind.ORDERING or edge.source == edge.target:
                continue
            tail, head = edge.source, edge.target
            if nx.has_path(dag, head, tail):
                tail, head = head, tail
            dag.add_edge(tail, head)
            self._add_rank_arc(tail, head, max(1, edge.minlen))

        for index, edge in enumerate(self.edges):
            if edge.kind is not EdgeKind.REAL or edge.source == edge.target:
                continue
            tail, head = edge.source, edge.target
            if fas_position[head] < fas_position[tail]:
                tail, head = head, tail
            if nx.has_path(dag, head, tail):
                tail, head = head, tail
            dag.add_edge(tail, head)
            self.oriented[index] = (tail, head)
            if tail != edge.source:
                self.reversed.add(index)
            minlen = max(1, edge.minlen, 2 if edge.has_label else 1)
            self._add_rank_arc(tail, head, minlen)

    def _add_rank_arc(self, tail: str, head: str, minlen: int) -> None:
        current = self.rank_arcs.get((tail, head), 0)
        self.rank_arcs[(tail, head)] = max(current, minlen)

    def _greedy_fas_order(self) -> Dict[str, int]:
        """
        Weighted greedy feedback arc set ordering (Eades, Lin and Smyth).

        Sinks are peeled off to the back, sources to the front, and otherwise
        the node with the largest outgoing minus incoming weight goes to the
        front. Ties resolve by node input order.
        """
        succ: Dict[str, Dict[str, float]] = {n: {} for n in self.node_index}
        pred: Dict[str, Dict[str, float]] = {n: {} for n in self.node_index}
        for edge in self.edges:
            if edge.source == edge.target:
                continue
            weight = succ[edge.source].get(edge.target, 0.0) + edge.weight
            succ[edge.source][edge.target] = weight
            pred[edge.target][edge.source] = weight

        out_weight = {n: sum(succ[n].values()) for n in self.node_index}
        in_weight = {n: sum(pred[n].values()) for n in self.node_index}
        order = list(self.node_index)
        alive = set(order)
        front: List[str] = []
        back: List[str] = []

        def remove(node: str) -> None:
            alive.discard(node)
            for target, weight in succ[node].items():
                if target in alive:
                    in_weight[target] -= weight
            for source, weight in pred[node].items():
                if source in alive:
                    out_weight[source] -= weight

        while alive:
            progress = True
            while progress:
                progress = False
                for node in order:
                    if node in alive and out_weight[node] <= EPSILON:
                        back.append(node)
                        remove(node)
                        progress = True
                for node in order:
                    if node in alive and in_weight[node] <= EPSILON:
                        front.append(node)
                        remove(node)
                        progress = True
            if alive:
                best = max(
                    (n for n in order if n in alive),
                    key=lambda n: out_weight[n] - in_weight[n],
                )
                front.append(best)
                remove(best)

        sequence = front + list(reversed(back))
        return {node: i for i, node in enumerate(sequence)}

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def _assign_ranks(self) -> None:
        rank_graph = nx.DiGraph()
        rank_graph.add_nodes_from(self.node_index)
        for (tail, head), minlen in self.rank_arcs.items():
            rank_graph.add_edge(tail, head, minlen=minlen)

        topo_order = list(
            nx.lexicographical_topological_sort(
                rank_graph, key=self.node_index.__getitem__
            )
        )
        ranks: Dict[str, int] = {}
        for node in topo_order:
            ranks[node] = max(
                (ranks[p] + data["minlen"] for p, data in rank_graph.pred[node].items()),
                default=0,
            )

        # Pull pure sources down next to their successors.
        for node in topo_order:
            if rank_graph.in_degree(node) == 0 and rank_graph.out_degree(node) > 0:
                ranks[node] = min(
                    ranks[s] - data["minlen"]
                    for s, data in rank_graph.succ[node].items()
                )

        lowest = min(ranks.values())
        self.ranks = {node: rank - lowest for node, rank in ranks.items()}

    # ------------------------------------------------------------------
    # Normalisation
    # ------------------------------------------------------------------

    def _build_items(self) -> None:
        spacing = self.spacing
        layer_lists: Dict[int, List[Hashable]] = {}

        def add(item: _Item) -> None:
            self.items[item.key] = item
            layer_lists.setdefault(item.rank, []).append(item.key)

        loop_extra: Dict[str, float] = {}
        for index in self.self_loops:
            edge = self.edges[index]
            extra = spacing.self_loop
            if edge.has_label:
                extra += SELF_LOOP_LABEL_GAP + edge.label_width
            # Loops on one node nest outwards, each in its own slot.
            shift = loop_extra.get(edge.source, 0.0)
            self.loop_slots[index] = (shift, self.loop_counts.get(edge.source, 0))
            self.loop_counts[edge.source] = self.loop_slots[index][1] + 1
            loop_extra[edge.source] = shift + extra

        for node in self.nodes:
            add(
                _Item(
                    node.id,
                    self.ranks[node.id],
                    node.width,
                    node.height,
                    NODE,
                    self.node_paths.get(node.id, ()),
                    loop_extra.get(node.id, 0.0),
                )
            )

        for index, (tail, head) in self.oriented.items():
            edge = self.edges[index]
            top, bottom = self.ranks[tail], self.ranks[head]
            span = bottom - top
            path = _common_prefix(
                self.node_paths.get(tail, ()), self.node_paths.get(head, ())
            )
            label_rank = top + span // 2 if edge.has_label else None
            chain: List[Hashable] = [tail]
            for rank in range(top + 1, bottom):
                key = ("d", index, rank)
                if rank == label_rank:
                    add(_Item(key, rank, edge.label_width, edge.label_height, LABEL, path))
                else:
                    add(_Item(key, rank, 0.0, 0.0, DUMMY, path))
                chain.append(key)
            chain.append(head)
            self.chains[index] = chain
            for upper, lower in zip(chain, chain[1:]):
                self.segments.append(_Segment(upper, lower, edge.weight))

        group_ranks: Dict[str, Set[int]] = {gid: set() for gid in self.group_order}
        for item in self.items.values():
            for gid in item.path:
                group_ranks[gid].add(item.rank)
        content_ranks = {gid: set(ranks) for gid, ranks in group_ranks.items()}

        # Children come before parents in reversed pre-order.
        post_order = list(reversed(self.group_order))
        pad = spacing.group_padding
        placeholder_width = max(0.0, spacing.empty_group_width - 2 * pad)
        placeholder_height = max(
            0.0, spacing.empty_group_height - 2 * pad - spacing.group_header
        )
        for gid in post_order:
            if content_ranks[gid] or self.group_specs[gid].children:
                continue
            path = self.group_paths[gid]
            rank = 0
            for ancestor in reversed(path[:-1]):
                if content_ranks[ancestor]:
                    rank = min(content_ranks[ancestor])
                    break
            key = ("p", gid)
            add(_Item(key, rank, placeholder_width, placeholder_height, PLACEHOLDER, path))
            self.placeholder_keys[gid] = key
            for member_of in path:
                group_ranks[member_of].add(rank)

        for gid in post_order:
            ranks = group_ranks[gid]
            if not ranks:
                continue
            first, last = min(ranks), max(ranks)
            self.group_span[gid] = (first, last)
            path = self.group_paths[gid]
            for rank in range(first, last + 1):
                if rank in ranks:
                    continue
                add(_Item(("f", gid, rank), rank, 0.0, 0.0, FILLER, path))
                for member_of in path:
                    group_ranks[member_of].add(rank)

        max_rank = max(layer_lists)
        self.layers = [layer_lists.get(rank, []) for rank in range(max_rank + 1)]

        for segment in self.segments:
            self.down.setdefault(segment.upper, []).append((segment.lower, segment.weight))
            self.up.setdefault(segment.lower, []).append((segment.upper, segment.weight))

    # ------------------------------------------------------------------
    # Crossing reduction
    # ------------------------------------------------------------------

    def _order(self) -> None:
        self._arrange_all()
        best = [list(layer) for layer in self.layers]
        best_crossings = self._crossings()

        for _ in range(self.sweep_iterations):
            if best_crossings <= EPSILON:
                break
            for rank in range(1, len(self.layers)):
                self._sort_rank(rank, self.up, rank - 1)
            for rank in range(len(self.layers) - 2, -1, -1):
                self._sort_rank(rank, self.down, rank + 1)
            crossings = self._crossings()
            if crossings < best_crossings:
                best = [list(layer) for layer in self.layers]
                best_crossings = crossings

        self.layers = best
        self._arrange_all()

    def _sort_rank(
        self,
        rank: int,
        neighbours: Dict[Hashable, List[Tuple[Hashable, float]]],
        ref_rank: int,
    ) -> None:
        """Order one rank by barycenter, then restore group contiguity."""
        ref_positions = {key: i for i, key in enumerate(self.layers[ref_rank])}

        def barycenter(entry: Tuple[int, Hashable]) -> Tuple[float, int]:
            index, key = entry
            total = 0.0
            weight_sum = 0.0
            for other, weight in neighbours.get(key, ()):
                if other in ref_positions:
                    total += ref_positions[other] * weight
                    weight_sum += weight
            if weight_sum <= EPSILON:
                # Keep nodes without neighbours where they are
                return (float(index), index)
            return (total / weight_sum, index)

        ordered = sorted(enumerate(self.layers[rank]), key=barycenter)
        layer = [key for _, key in ordered]
        self.layers[rank] = self._arrange(layer, 0, self._sibling_order())

    def _crossings(self) -> float:
        """Weighted number of crossing segment pairs over all rank gaps."""
        positions: Dict[Hashable, int] = {}
        for layer in self.layers:
            for i, key in enumerate(layer):
                positions[key] = i

        by_gap: Dict[int, List[Tuple[int, int, float]]] = {}
        for segment in self.segments:
            rank = self.items[segment.upper].rank
            by_gap.setdefault(rank, []).append(
                (positions[segment.upper], positions[segment.lower], segment.weight)
            )

        total = 0.0
        for gap_segments in by_gap.values():
            for i, (a1, b1, w1) in enumerate(gap_segments):
                for a2, b2, w2 in gap_segments[i + 1 :]:
                    if (a1 - a2) * (b1 - b2) < 0:
                        total += w1 * w2
        return total

    def _sibling_order(self) -> Dict[str, int]:
        """
        One global left-to-right order of sibling groups.

        Groups are sorted by the mean normalised position of their items over
        all ranks, ties broken by declaration order.
        """
        sums: Dict[str, float] = {gid: 0.0 for gid in self.group_order}
        counts: Dict[str, int] = {gid: 0 for gid in self.group_order}
        for layer in self.layers:
            size = len(layer)
            for i, key in enumerate(layer):
                position = (i + 0.5) / size
                for gid in self.items[key].path:
                    sums[gid] += position
                    counts[gid] += 1

        declared = {gid: i for i, gid in enumerate(self.group_order)}

        def mean(gid: str) -> float:
            return sums[gid] / counts[gid] if counts[gid] else 0.0

        families = [[g.id for g in self.groups]]
        families.extend(
            [child.id for child in spec.children] for spec in self.group_specs.values()
        )
        order: Dict[str, int] = {}
        for siblings in families:
            ranked = sorted(siblings, key=lambda gid: (mean(gid), declared[gid]))
            for i, gid in enumerate(ranked):
                order[gid] = i
        return order

    def _arrange_all(self) -> None:
        order = self._sibling_order()
        self.layers = [self._arrange(layer, 0, order) for layer in self.layers]

    def _arrange(
        self, keys: List[Hashable], depth: int, order: Dict[str, int]
    ) -> List[Hashable]:
        """
        Make every group contiguous within a rank.

        Items directly at this depth keep their slots. Child groups become
        single units placed at the mean position of their items; the slots
        taken by group units are then handed out in the global sibling order.
        """
        units: List[Tuple[float, Optional[Hashable], Optional[str]]] = []
        members: Dict[str, List[Hashable]] = {}
        slots: Dict[str, List[int]] = {}
        for i, key in enumerate(keys):
            path = self.items[key].path
            if len(path) > depth:
                gid = path[depth]
                members.setdefault(gid, []).append(key)
                slots.setdefault(gid, []).append(i)
            else:
                units.append((float(i), key, None))
        for gid, indexes in slots.items():
            units.append((sum(indexes) / len(indexes), None, gid))
        units.sort(key=lambda unit: unit[0])

        group_queue = sorted(
            (gid for _, _, gid in units if gid is not None), key=order.__getitem__
        )
        queue_index = 0
        arranged: List[Hashable] = []
        for _, key, gid in units:
            if gid is None:
                arranged.append(key)
            else:
                chosen = group_queue[queue_index]
                queue_index += 1
                arranged.extend(self._arrange(members[chosen], depth + 1, order))
        return arranged

    # ------------------------------------------------------------------
    # Horizontal coordinates
    # ------------------------------------------------------------------

    def _assign_x(self) -> None:
        """
        Solve the horizontal placement as a difference-constraint LP.

        Variables are item centres plus the left (L) and right (R) bounds of
        every group. Each arc tail -> head means x[head] - x[tail] >= delta.
        The objective sums cost * (x[head] - x[tail]) over cost arcs. Its
        dual is a min-cost flow, solved with network simplex; the optimal
        coordinates are then recovered as shortest path potentials.
        """
        spacing = self.spacing
        pad = spacing.group_padding
        constraints: Dict[Tuple[Hashable, Hashable], float] = {}
        costs: Dict[Tuple[Hashable, Hashable], int] = {}

        def require(tail: Hashable, head: Hashable, delta: float) -> None:
            current = constraints.get((tail, head))
            if current is None or delta > current:
                constraints[(tail, head)] = delta

        def charge(tail: Hashable, head: Hashable, cost: int) -> None:
            costs[(tail, head)] = costs.get((tail, head), 0) + cost

        for layer in self.layers:
            for left_key, right_key in zip(layer, layer[1:]):
                left, right = self.items[left_key], self.items[right_key]
                shared = len(_common_prefix(left.path, right.path))
                bounded = False
                if len(left.path) > shared:
                    tail: Hashable = ("R", left.path[shared])
                    left_offset = 0.0
                    bounded = True
                else:
                    tail = left_key
                    left_offset = left.width / 2 + left.extra
                if len(right.path) > shared:
                    head: Hashable = ("L", right.path[shared])
                    right_offset = 0.0
                    bounded = True
                else:
                    head = right_key
                    right_offset = right.width / 2
                if bounded or not (left.is_dummy or right.is_dummy):
                    gap = spacing.node
                else:
                    gap = spacing.edge
                require(tail, head, left_offset + gap + right_offset)

            for key in layer:
                item = self.items[key]
                if item.path:
                    gid = item.path[-1]
                    require(("L", gid), key, pad + item.width / 2)
                    require(key, ("R", gid), item.width / 2 + item.extra + pad)

        for gid in self.group_order:
            path = self.group_paths[gid]
            if len(path) > 1:
                parent = path[-2]
                require(("L", parent), ("L", gid), pad)
                require(("R", gid), ("R", parent), pad)

        for index, segment in enumerate(self.segments):
            upper, lower = self.items[segment.upper], self.items[segment.lower]
            dummies = int(upper.kind in (DUMMY, LABEL)) + int(lower.kind in (DUMMY, LABEL))
            cost = max(1, int(round(SEGMENT_COSTS[dummies] * segment.weight * ALIGN_SCALE)))
            aux = ("n", index)
            require(aux, segment.upper, 0.0)
            require(aux, segment.lower, 0.0)
            charge(aux, segment.upper, cost)
            charge(aux, segment.lower, cost)

        for gid in self.group_order:
            if gid in self.group_span:
                require(("L", gid), ("R", gid), 0.0)
                charge(("L", gid), ("R", gid), GROUP_COMPACTION_COST)

        scaled = {arc: _integerize(delta) for arc, delta in constraints.items()}
        network = nx.DiGraph()
        network.add_nodes_from(self.items)
        for tail, head in scaled:
            network.add_node(tail)
            network.add_node(head)
        demand: Dict[Hashable, int] = {}
        for (tail, head), cost in costs.items():
            demand[head] = demand.get(head, 0) + cost
            demand[tail] = demand.get(tail, 0) - cost
        for node in network.nodes:
            network.nodes[node]["demand"] = demand.get(node, 0)
        for (tail, head), delta in scaled.items():
            network.add_edge(tail, head, weight=-delta)

        flow: Dict[Hashable, Dict[Hashable, int]] = {}
        if costs:
            try:
                _, flow = nx.network_simplex(network)
            except (nx.NetworkXUnfeasible, nx.NetworkXUnbounded) as exc:
                raise LayoutError("Horizontal placement constraints conflict") from exc

        source = ("S",)
        residual = nx.DiGraph()
        residual.add_node(source)
        for node in network.nodes:
            residual.add_edge(source, node, weight=0)
        for (tail, head), delta in scaled.items():
            _add_lightest(residual, tail, head, -delta)
            if flow.get(tail, {}).get(head, 0) > 0:
                _add_lightest(residual, head, tail, delta)
        try:
            distances = nx.single_source_bellman_ford_path_length(residual, source)
        except nx.NetworkXUnbounded as exc:
            raise LayoutError("Horizontal placement constraints conflict") from exc

        self.x = {node: -distances[node] / COORD_SCALE for node in network.nodes}
        self._balance(scaled)

    def _balance(self, scaled: Dict[Tuple[Hashable, Hashable], int]) -> None:
        """Centre real nodes over their neighbours where the optimum is flat."""
        lower_bounds: Dict[Hashable, List[Tuple[Hashable, float]]] = {}
        upper_bounds: Dict[Hashable, List[Tuple[Hashable, float]]] = {}
        for (tail, head), delta in scaled.items():
            if isinstance(tail, tuple) and tail[0] == "n":
                continue
            lower_bounds.setdefault(head, []).append((tail, delta / COORD_SCALE))
            upper_bounds.setdefault(tail, []).append((head, delta / COORD_SCALE))

        for layer in self.layers:
            for key in layer:
                if self.items[key].kind != NODE:
                    continue
                neighbours = [
                    (self.x[other], weight)
                    for other, weight in self.up.get(key, []) + self.down.get(key, [])
                ]
                if not neighbours:
                    continue
                target = _weighted_median_midpoint(neighbours)
                low = max(
                    (self.x[t] + d for t, d in lower_bounds.get(key, [])),
                    default=-math.inf,
                )
                high = min(
                    (self.x[h] - d for h, d in upper_bounds.get(key, [])),
                    default=math.inf,
                )
                if low > high:
                    continue
                self.x[key] = min(max(target, low), high)

    # ------------------------------------------------------------------
    # Vertical coordinates
    # ------------------------------------------------------------------

    def _assign_y(self) -> None:
        spacing = self.spacing
        opening: Dict[int, int] = {}
        closing: Dict[int, int] = {}
        for layer in self.layers:
            for key in layer:
                item = self.items[key]
                opens = sum(1 for g in item.path if self.group_span[g][0] == item.rank)
                closes = sum(1 for g in item.path if self.group_span[g][1] == item.rank)
                opening[item.rank] = max(opening.get(item.rank, 0), opens)
                closing[item.rank] = max(closing.get(item.rank, 0), closes)

        present = [rank for rank, layer in enumerate(self.layers) if layer]
        for rank in present:
            self.rank_height[rank] = max(self.items[k].height for k in self.layers[rank])

        header_band = spacing.group_padding + spacing.group_header
        previous: Optional[int] = None
        for rank in present:
            half = self.rank_height[rank] / 2
            if previous is None:
                self.rank_y[rank] = opening.get(rank, 0) * header_band + half
            else:
                self.rank_y[rank] = (
                    self.rank_y[previous]
                    + self.rank_height[previous] / 2
                    + spacing.rank
                    + closing.get(previous, 0) * spacing.group_padding
                    + opening.get(rank, 0) * header_band
                    + half
                )
                self.next_rank[previous] = rank
            previous = rank

    def _gap_midline(self, rank: int) -> float:
        below = self.next_rank[rank]
        top = self.rank_y[rank] + self.rank_height[rank] / 2
        bottom = self.rank_y[below] - self.rank_height[below] / 2
        return (top + bottom) / 2

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _center(self, key: Hashable) -> Point:
        return Point(self.x[key], self.rank_y[self.items[key].rank])

    def _emit(self) -> RawLayout:
        result = RawLayout()
        for node in self.nodes:
            result.centers[node.id] = self._center(node.id)
            result.ranks[node.id] = self.ranks[node.id]

        for index, chain in self.chains.items():
            points = [self._center(chain[0])]
            for upper, lower in zip(chain, chain[1:]):
                midline = self._gap_midline(self.items[upper].rank)
                points.append(Point(self.x[lower], midline))
            points.append(self._center(chain[-1]))
            if index in self.reversed:
                points.reverse()
            result.edge_paths[index] = points
            for key in chain:
                if self.items[key].kind == LABEL:
                    result.label_anchors[index] = self._center(key)

        reach = self.spacing.self_loop
        for index in self.self_loops:
            edge = self.edges[index]
            node = self.node_by_id[edge.source]
            center = result.centers[node.id]
            shift, slot = self.loop_slots[index]
            right = center.x + node.width / 2
            outer = right + shift + reach
            # Each slot also nests inside the next one vertically.
            offset = node.height / 2 * (slot + 1) / (self.loop_counts[node.id] + 1)
            result.edge_paths[index] = [
                Point(right, center.y - offset),
                Point(outer, center.y - offset),
                Point(outer, center.y + offset),
                Point(right, center.y + offset),
            ]
            if edge.has_label:
                result.label_anchors[index] = Point(
                    outer + SELF_LOOP_LABEL_GAP / 2 + edge.label_width / 2,
                    center.y,
                )

        result.reversed_edges = set(self.reversed)
        for gid, key in self.placeholder_keys.items():
            item = self.items[key]
            center = self._center(key)
            result.placeholders[gid] = NodeRect(
                center.x, center.y, item.width / 2, item.height / 2
            )
        return result


def _common_prefix(a: Tuple[str, ...], b: Tuple[str, ...]) -> Tuple[str, ...]:
    shared = 0
    for left, right in zip(a, b):
        if left != right:
            break
        shared += 1
    return a[:shared]


def _integerize(delta: float) -> int:
    return math.ceil(round(delta * COORD_SCALE, 6))


def _add_lightest(graph: nx.DiGraph, tail: Hashable, head: Hashable, weight: int) -> None:
    if graph.has_edge(tail, head):
        weight = min(weight, graph[tail][head]["weight"])
    graph.add_edge(tail, head, weight=weight)


def _weighted_median_midpoint(values: List[Tuple[float, float]]) -> float:
    """Midpoint of the interval of weighted medians of (value, weight) pairs."""
    ordered = sorted(values)
    total = sum(weight for _, weight in ordered)
    half = total / 2
    cumulative = 0.0
    lower: Optional[float] = None
    upper: Optional[float] = None
    for value, weight in ordered:
        cumulative += weight
        if lower is None and cumulative >= half - EPSILON:
            lower = value
        if cumulative > half + EPSILON:
            upper = value
            break
    if lower is None:
        lower = ordered[-1][0]
    if upper is None:
        upper = ordered[-1][0]
    return (lower + upper) / 2
