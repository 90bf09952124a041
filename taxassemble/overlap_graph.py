"""
Overlap graph construction for gene-centric assembly.

Reads of one bin become nodes of a directed graph; an edge ``a -> b`` means
that a suffix of read ``a`` equals a prefix of read ``b`` over at least
``min_overlap`` bases. Reads whose whole sequence occurs inside another read
are not given nodes; they are recorded as contained in that read and only
add to its coverage.

The graph is an arena: nodes are integer indices into flat lists, edges are
stored in per-node dictionaries keyed by the target index.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple, Union

import networkx as nx

from .exceptions import GraphInvariantError, InvalidSequenceError, TooManyErrorsError
from .genomic_types import NodeIndex, ReadId
from .logging_config import PerformanceLogger
from .progress import ProgressListener
from .sequence import AssemblyRead, normalize_sequence

logger = logging.getLogger(__name__)

# Cancellation and progress are checked once per this many reads
PROGRESS_BATCH_SIZE = 1000


@dataclass(slots=True)
class ReadData:
    """
    A read accepted by the graph builder.

    Attributes:
        read_id: Position of the read among the accepted reads.
        name: Read name from the input.
        segment: Upper-cased sequence.
        container_id: Read id of the read containing this one, or None.
        offset: Start of this read inside its container (0 if not contained).
    """

    read_id: ReadId
    name: str
    segment: str
    container_id: Optional[ReadId] = None
    offset: int = 0

    @property
    def is_contained(self) -> bool:
        return self.container_id is not None


class OverlapGraph:
    """
    Directed overlap graph over read ids.

    Invariants: no self loops and at most one edge per ordered node pair;
    adding a second edge between the same pair keeps the longer overlap.
    """

    def __init__(self) -> None:
        self._node_read_ids: List[ReadId] = []
        self._read_to_node: Dict[ReadId, NodeIndex] = {}
        self._out_edges: List[Dict[NodeIndex, int]] = []
        self._in_edges: List[Dict[NodeIndex, int]] = []
        self._edge_count = 0

    def add_node(self, read_id: ReadId) -> NodeIndex:
        if read_id in self._read_to_node:
            raise GraphInvariantError("Read already has a node", {"read_id": read_id})
        node = len(self._node_read_ids)
        self._node_read_ids.append(read_id)
        self._read_to_node[read_id] = node
        self._out_edges.append({})
        self._in_edges.append({})
        return node

    def add_edge(self, source: NodeIndex, target: NodeIndex, overlap: int) -> None:
        if source == target:
            raise GraphInvariantError("Self loops are not allowed", {"node": source})
        if not (0 <= source < len(self._node_read_ids) and 0 <= target < len(self._node_read_ids)):
            raise GraphInvariantError("Edge refers to unknown node", {"source": source, "target": target})
        current = self._out_edges[source].get(target)
        if current is None:
            self._edge_count += 1
        elif current >= overlap:
            return
        self._out_edges[source][target] = overlap
        self._in_edges[target][source] = overlap

    @property
    def number_of_nodes(self) -> int:
        return len(self._node_read_ids)

    @property
    def number_of_edges(self) -> int:
        return self._edge_count

    def nodes(self) -> range:
        return range(len(self._node_read_ids))

    def read_id(self, node: NodeIndex) -> ReadId:
        return self._node_read_ids[node]

    def node_of_read(self, read_id: ReadId) -> Optional[NodeIndex]:
        return self._read_to_node.get(read_id)

    def successors(self, node: NodeIndex) -> Dict[NodeIndex, int]:
        """Targets of the outgoing edges of `node`, mapped to their overlaps."""
        return self._out_edges[node]

    def predecessors(self, node: NodeIndex) -> Dict[NodeIndex, int]:
        return self._in_edges[node]

    def overlap(self, source: NodeIndex, target: NodeIndex) -> Optional[int]:
        return self._out_edges[source].get(target)

    def out_degree(self, node: NodeIndex) -> int:
        return len(self._out_edges[node])

    def in_degree(self, node: NodeIndex) -> int:
        return len(self._in_edges[node])

    def edges(self) -> Iterator[Tuple[NodeIndex, NodeIndex, int]]:
        for source, targets in enumerate(self._out_edges):
            for target in sorted(targets):
                yield source, target, targets[target]

    def to_networkx(self, read_data: List[ReadData], label: str = "") -> nx.DiGraph:
        """
        Copy of the graph as a networkx DiGraph.

        Nodes carry ``label`` (read name) and ``sequence`` (read segment),
        edges carry ``overlap``.
        """
        graph = nx.DiGraph(name=label)
        for node in self.nodes():
            data = read_data[self.read_id(node)]
            graph.add_node(node, label=data.name, sequence=data.segment)
        for source, target, overlap in self.edges():
            graph.add_edge(source, target, overlap=overlap)
        return graph

    def write_gml(
        self,
        handle: TextIO,
        read_data: List[ReadData],
        label: str = "",
        comment: str = "Overlap graph",
    ) -> Tuple[int, int]:
        """
        Write the graph in GML.

        GML writes each node's key as its ``label``, so nodes are keyed by
        read name here; repeated names get the node index appended.

        Returns:
            (number of nodes, number of edges) written.
        """
        graph = self.to_networkx(read_data, label=label)
        graph.graph["comment"] = comment
        names = [graph.nodes[node]["label"] for node in graph.nodes]
        repeated = {name for name, count in Counter(names).items() if count > 1}
        mapping = {
            node: f"{name}_{node}" if name in repeated else name
            for node, name in zip(graph.nodes, names)
        }
        graph = nx.relabel_nodes(graph, mapping)
        for line in nx.generate_gml(graph):
            handle.write(line + "\n")
        return self.number_of_nodes, self.number_of_edges


ReadInput = Union[AssemblyRead, Tuple[str, str]]


class OverlapGraphBuilder:
    """
    Builds the overlap graph of a set of reads using exact overlaps.

    After :meth:`apply`, the results are available as ``overlap_graph``,
    ``read_data`` (indexed by read id), ``contained_reads`` (read id of a
    container mapped to the read ids it contains) and ``skipped_count``.
    """

    def __init__(
        self,
        min_overlap: int,
        max_number_of_reads: int = -1,
        max_errors: int = -1,
    ) -> None:
        """
        Args:
            min_overlap: Minimum length of a suffix/prefix overlap.
            max_number_of_reads: Read at most this many reads; -1 for all.
            max_errors: Raise once more than this many reads were skipped; -1 for no limit.
        """
        if min_overlap < 1:
            raise ValueError(f"min_overlap must be positive, got {min_overlap}.")
        self.min_overlap = min_overlap
        self.max_number_of_reads = max_number_of_reads
        self.max_errors = max_errors

        self.overlap_graph = OverlapGraph()
        self.read_data: List[ReadData] = []
        self.contained_reads: Dict[ReadId, List[ReadId]] = {}
        self.skipped_count = 0
        self.perf = PerformanceLogger()

    def apply(
        self, reads: Iterable[ReadInput], progress: Optional[ProgressListener] = None
    ) -> OverlapGraph:
        """
        Read the input and build the graph.

        Args:
            reads: ``AssemblyRead`` objects or (name, sequence) pairs.
            progress: Optional progress listener, also used for cancellation.

        Returns:
            The overlap graph.

        Raises:
            TooManyErrorsError: If more than ``max_errors`` reads were skipped.
            CanceledError: If the progress listener was canceled.
        """
        progress = progress or ProgressListener()
        start = time.perf_counter()

        progress.set_subtask("Reading reads")
        self._load_reads(reads, progress)

        progress.set_subtask("Detecting contained reads")
        order = sorted(range(len(self.read_data)), key=lambda i: (-len(self.read_data[i].segment), i))
        prefix_index = self._build_prefix_index()
        self._detect_contained_reads(order, prefix_index, progress)

        progress.set_subtask("Building overlap graph")
        for read_id in range(len(self.read_data)):
            if not self.read_data[read_id].is_contained:
                self.overlap_graph.add_node(read_id)
        self._detect_overlaps(prefix_index, progress)
        progress.report_task_completed()

        logger.info(
            f"Overlap graph: {self.overlap_graph.number_of_nodes} nodes, "
            f"{self.overlap_graph.number_of_edges} edges, "
            f"{sum(len(v) for v in self.contained_reads.values())} contained reads, "
            f"{self.skipped_count} skipped reads"
        )
        self.perf.log_throughput(
            "overlap_graph", len(self.read_data), time.perf_counter() - start
        )
        return self.overlap_graph

    def _load_reads(self, reads: Iterable[ReadInput], progress: ProgressListener) -> None:
        for count, item in enumerate(reads, start=1):
            if 0 < self.max_number_of_reads < count:
                logger.info(f"Stopped reading after {self.max_number_of_reads} reads")
                break
            if count % PROGRESS_BATCH_SIZE == 0:
                progress.check_canceled()

            if isinstance(item, AssemblyRead):
                name, segment = item.name, item.sequence
            else:
                name, raw_sequence = item
                try:
                    segment = normalize_sequence(raw_sequence)
                except InvalidSequenceError as e:
                    self._skip(name, e)
                    continue
            self.read_data.append(ReadData(read_id=len(self.read_data), name=name, segment=segment))

        if self.skipped_count:
            logger.warning(f"Skipped {self.skipped_count} reads with empty or invalid sequences")

    def _skip(self, name: str, error: Exception) -> None:
        self.skipped_count += 1
        logger.debug(f"Skipping read {name}: {error}")
        if 0 <= self.max_errors < self.skipped_count:
            raise TooManyErrorsError(
                "Too many malformed reads",
                {"skipped": self.skipped_count, "max_errors": self.max_errors},
            )

    def _build_prefix_index(self) -> Dict[str, List[ReadId]]:
        """Map the first `min_overlap` bases of every long-enough read to read ids."""
        index: Dict[str, List[ReadId]] = {}
        k = self.min_overlap
        for data in self.read_data:
            if len(data.segment) >= k:
                index.setdefault(data.segment[:k], []).append(data.read_id)
        return index

    def _mark_contained(self, read_id: ReadId, container_id: ReadId, offset: int) -> None:
        data = self.read_data[read_id]
        data.container_id = container_id
        data.offset = offset
        self.contained_reads.setdefault(container_id, []).append(read_id)

    def _detect_contained_reads(
        self,
        order: List[ReadId],
        prefix_index: Dict[str, List[ReadId]],
        progress: ProgressListener,
    ) -> None:
        """
        Longest reads first: every read not yet contained claims the later
        reads that occur inside it, at their leftmost position.
        """
        k = self.min_overlap
        rank = {read_id: position for position, read_id in enumerate(order)}
        short_reads = [r for r in order if len(self.read_data[r].segment) < k]

        progress.set_maximum(len(order))
        for position, container_id in enumerate(order):
            progress.increment_progress()
            container = self.read_data[container_id]
            if container.is_contained:
                continue
            segment = container.segment

            for offset in range(len(segment) - k + 1):
                for candidate_id in prefix_index.get(segment[offset:offset + k], ()):
                    if rank[candidate_id] <= position:
                        continue
                    candidate = self.read_data[candidate_id]
                    if candidate.is_contained or len(candidate.segment) > len(segment) - offset:
                        continue
                    if segment.startswith(candidate.segment, offset):
                        self._mark_contained(candidate_id, container_id, offset)

            # Reads shorter than the seed cannot be found through the index
            for candidate_id in short_reads:
                if rank[candidate_id] <= position:
                    continue
                candidate = self.read_data[candidate_id]
                if candidate.is_contained:
                    continue
                offset = segment.find(candidate.segment)
                if offset >= 0:
                    self._mark_contained(candidate_id, container_id, offset)

    def _detect_overlaps(
        self, prefix_index: Dict[str, List[ReadId]], progress: ProgressListener
    ) -> None:
        """
        For every node, look up each suffix start in the prefix index. Scanning
        start positions left to right finds the longest overlap with a target first.
        """
        k = self.min_overlap
        graph = self.overlap_graph
        progress.set_maximum(graph.number_of_nodes)
        for source in graph.nodes():
            progress.increment_progress()
            segment = self.read_data[graph.read_id(source)].segment

            for start in range(1, len(segment) - k + 1):
                candidates = prefix_index.get(segment[start:start + k])
                if not candidates:
                    continue
                suffix_length = len(segment) - start
                for target_id in candidates:
                    target = graph.node_of_read(target_id)
                    if target is None or target == source:
                        continue
                    if len(self.read_data[target_id].segment) <= suffix_length:
                        continue
                    if graph.overlap(source, target) is not None:
                        continue
                    if self.read_data[target_id].segment.startswith(segment[start:]):
                        graph.add_edge(source, target, suffix_length)
