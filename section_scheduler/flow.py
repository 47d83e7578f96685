"""Capacitated flow network with a Dinic max-flow solver.

Edges are stored in flat lists; edge ``e ^ 1`` is always the reverse of edge
``e``. ``cap`` holds residual capacities, so after solving a forward edge is
saturated when its residual drops to zero.
"""

from collections import deque
from typing import List

from ortools.graph.python import max_flow


class FlowNetwork:
    def __init__(self, num_nodes: int) -> None:
        self.num_nodes = num_nodes
        self.adj: List[List[int]] = [[] for _ in range(num_nodes)]
        self.to: List[int] = []
        self.cap: List[int] = []
        self.original: List[int] = []

    def add_node(self) -> int:
        self.adj.append([])
        self.num_nodes += 1
        return self.num_nodes - 1

    def add_edge(self, u: int, v: int, capacity: int) -> int:
        """Add u -> v and its zero-capacity reverse; returns the forward edge id."""
        assert capacity >= 0, f"negative capacity {capacity} on edge {u}->{v}"
        # forward at eid, reverse at eid + 1
        eid = len(self.to)
        self.to.append(v)
        self.cap.append(capacity)
        self.original.append(capacity)
        self.adj[u].append(eid)
        self.to.append(u)
        self.cap.append(0)
        self.original.append(0)
        self.adj[v].append(eid + 1)
        return eid

    def flow_on(self, eid: int) -> int:
        return self.original[eid] - self.cap[eid]

    def saturated(self, eid: int) -> bool:
        return self.cap[eid] == 0 and self.original[eid] > 0

    # ------------------------------------------------------------------ #
    # Dinic
    # ------------------------------------------------------------------ #
    def _bfs(self, source: int, sink: int, level: List[int]) -> bool:
        for i in range(self.num_nodes):
            level[i] = -1
        level[source] = 0
        queue = deque([source])
        while queue:
            u = queue.popleft()
            for eid in self.adj[u]:
                v = self.to[eid]
                if self.cap[eid] > 0 and level[v] < 0:
                    level[v] = level[u] + 1
                    queue.append(v)
        return level[sink] >= 0

    def _dfs(self, u: int, sink: int, pushed: int, level: List[int], it: List[int]) -> int:
        if u == sink:
            return pushed
        edges = self.adj[u]
        while it[u] < len(edges):
            eid = edges[it[u]]
            v = self.to[eid]
            if self.cap[eid] > 0 and level[v] == level[u] + 1:
                got = self._dfs(v, sink, min(pushed, self.cap[eid]), level, it)
                if got > 0:
                    # residual moves from the edge onto its twin
                    self.cap[eid] -= got
                    self.cap[eid ^ 1] += got
                    return got
            it[u] += 1
        return 0

    def max_flow(self, source: int, sink: int) -> int:
        """Run Dinic until no augmenting path is left; returns the flow value."""
        if source == sink:
            return 0
        total = 0
        level = [-1] * self.num_nodes
        while self._bfs(source, sink, level):
            # per-node edge pointer; dead edges are never retried within a phase
            it = [0] * self.num_nodes
            while True:
                pushed = self._dfs(source, sink, float("inf"), level, it)
                if not pushed:
                    break
                total += pushed
        assert all(c >= 0 for c in self.cap), "negative residual capacity"
        return total

    def max_flow_ortools(self, source: int, sink: int) -> int:
        """Solve the same network with OR-Tools and write flows back as residuals."""
        if source == sink or not self.to:
            return 0
        smf = max_flow.SimpleMaxFlow()
        arcs = {}
        # reverse edges are implicit in SimpleMaxFlow, only forward ones are added
        for eid in range(0, len(self.to), 2):
            u = self.to[eid ^ 1]
            arcs[eid] = smf.add_arc_with_capacity(u, self.to[eid], self.original[eid])
        status = smf.solve(source, sink)
        if status != smf.OPTIMAL:
            raise RuntimeError(f"OR-Tools max flow ended with status {status}")
        for eid, arc in arcs.items():
            flow = int(smf.flow(arc))
            self.cap[eid] = self.original[eid] - flow
            self.cap[eid ^ 1] = flow
        return int(smf.optimal_flow())

    def solve(self, source: int, sink: int, solver: str = "dinic") -> int:
        if solver == "ortools":
            return self.max_flow_ortools(source, sink)
        return self.max_flow(source, sink)
