"""
Extraction of read paths from an overlap graph.

Every node of the graph ends up in exactly one path. Paths start at the
lowest-index node that has no unvisited predecessor; when only cycles are
left, at the lowest unvisited node. A walk continues to the unvisited
successor with the longest overlap (ties: lowest node index) and stops when
no unvisited successor remains.
"""

import heapq
import logging
from typing import List, Optional

from .genomic_types import NodeIndex
from .overlap_graph import OverlapGraph
from .progress import ProgressListener

logger = logging.getLogger(__name__)


class PathExtractor:
    """Greedy, deterministic path cover of an overlap graph."""

    def __init__(self, graph: OverlapGraph) -> None:
        self.graph = graph
        self.paths: List[List[NodeIndex]] = []

    def _next_node(self, node: NodeIndex, visited: bytearray) -> Optional[NodeIndex]:
        best: Optional[NodeIndex] = None
        best_overlap = -1
        for target, overlap in self.graph.successors(node).items():
            if visited[target]:
                continue
            if overlap > best_overlap or (overlap == best_overlap and target < best):
                best, best_overlap = target, overlap
        return best

    def apply(self, progress: Optional[ProgressListener] = None) -> List[List[NodeIndex]]:
        """
        Compute the paths.

        Args:
            progress: Optional progress listener, also used for cancellation.

        Returns:
            List of paths, each a list of node indices in walk order.
        """
        progress = progress or ProgressListener()
        graph = self.graph
        node_count = graph.number_of_nodes
        progress.set_subtask("Extracting paths")
        progress.set_maximum(node_count)

        visited = bytearray(node_count)
        remaining_in = [graph.in_degree(node) for node in graph.nodes()]
        sources = [node for node in graph.nodes() if remaining_in[node] == 0]
        heapq.heapify(sources)
        lowest_unvisited = 0
        paths: List[List[NodeIndex]] = []

        while True:
            start: Optional[NodeIndex] = None
            while sources:
                node = heapq.heappop(sources)
                if not visited[node]:
                    start = node
                    break
            if start is None:
                while lowest_unvisited < node_count and visited[lowest_unvisited]:
                    lowest_unvisited += 1
                if lowest_unvisited == node_count:
                    break
                start = lowest_unvisited

            path: List[NodeIndex] = []
            node: Optional[NodeIndex] = start
            while node is not None:
                visited[node] = 1
                path.append(node)
                progress.increment_progress()
                for target in graph.successors(node):
                    remaining_in[target] -= 1
                    if remaining_in[target] == 0 and not visited[target]:
                        heapq.heappush(sources, target)
                node = self._next_node(node, visited)
            paths.append(path)

        progress.report_task_completed()
        logger.info(f"Extracted {len(paths)} paths from {node_count} nodes")
        self.paths = paths
        return paths
