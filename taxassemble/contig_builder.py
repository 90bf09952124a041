"""
Contig construction from overlap-graph paths.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from .exceptions import GraphInvariantError
from .genomic_types import NodeIndex, ReadId
from .overlap_graph import OverlapGraph, ReadData
from .progress import ProgressListener

logger = logging.getLogger(__name__)

CONTIG_PREFIX = "contig"
SINGLETON_PREFIX = "singleton"
DESCRIPTOR_START = "length="


@dataclass(frozen=True, slots=True)
class Contig:
    """An assembled sequence with its FASTA header (including the leading ``>``)."""

    header: str
    sequence: str

    @property
    def descriptor(self) -> str:
        """Part of the header from ``length=`` on, or the whole title if absent."""
        position = self.header.find(DESCRIPTOR_START)
        if position >= 0:
            return self.header[position:]
        return self.header.lstrip(">")

    def __len__(self) -> int:
        return len(self.sequence)


def format_contig_header(prefix: str, number: int, length: int, read_count: int, coverage: float) -> str:
    return f">{prefix}-{number:06d} length={length} reads={read_count} avCoverage={coverage:.1f}"


class ContigBuilder:
    """
    Turns paths of read nodes into contigs.

    Reads along a path are joined using the overlaps of the connecting edges.
    Each base gets a coverage count from the path reads and from the reads
    contained in them. After :meth:`apply`, ``count_contigs``,
    ``count_singletons`` and ``count_rejected`` hold the outcome per path.
    """

    def __init__(
        self,
        paths: List[List[NodeIndex]],
        graph: OverlapGraph,
        contained_reads: Optional[Dict[ReadId, List[ReadId]]] = None,
    ) -> None:
        self.paths = paths
        self.graph = graph
        self.contained_reads = contained_reads or {}
        self.contigs: List[Contig] = []
        self.count_contigs = 0
        self.count_singletons = 0
        self.count_rejected = 0

    def _assemble_path(
        self, path: List[NodeIndex], read_data: List[ReadData]
    ) -> Tuple[str, np.ndarray, int]:
        """Return (sequence, coverage profile, number of reads) of one path."""
        placements: List[Tuple[int, ReadData]] = []
        parts: List[str] = []
        start = 0
        previous: Optional[NodeIndex] = None
        for node in path:
            data = read_data[self.graph.read_id(node)]
            if previous is None:
                parts.append(data.segment)
            else:
                overlap = self.graph.overlap(previous, node)
                if overlap is None:
                    raise GraphInvariantError(
                        "Consecutive path nodes are not connected", {"source": previous, "target": node}
                    )
                start += len(read_data[self.graph.read_id(previous)].segment) - overlap
                parts.append(data.segment[overlap:])
            placements.append((start, data))
            previous = node

        sequence = "".join(parts)
        coverage = np.zeros(len(sequence), dtype=np.int32)
        read_count = 0
        for start, data in placements:
            coverage[start:start + len(data.segment)] += 1
            read_count += 1
            for contained_id in self.contained_reads.get(data.read_id, ()):
                contained = read_data[contained_id]
                begin = start + contained.offset
                coverage[begin:begin + len(contained.segment)] += 1
                read_count += 1
        return sequence, coverage, read_count

    def apply(
        self,
        read_data: List[ReadData],
        min_reads: int,
        min_coverage: float,
        min_length: int,
        include_singletons: bool = False,
        progress: Optional[ProgressListener] = None,
    ) -> List[Contig]:
        """
        Build contigs for all paths and filter them.

        Args:
            read_data: Read table indexed by read id.
            min_reads: Minimum number of reads (path and contained) per contig.
            min_coverage: Minimum average coverage.
            min_length: Minimum contig length.
            include_singletons: Keep single-node paths below `min_reads` as singletons.
            progress: Optional progress listener, also used for cancellation.

        Returns:
            The accepted contigs, in path order.
        """
        progress = progress or ProgressListener()
        progress.set_subtask("Building contigs")
        progress.set_maximum(len(self.paths))

        self.contigs = []
        self.count_contigs = self.count_singletons = self.count_rejected = 0

        for path in self.paths:
            progress.increment_progress()
            if not path:
                continue
            sequence, coverage, read_count = self._assemble_path(path, read_data)
            average_coverage = float(coverage.mean()) if len(sequence) else 0.0

            if average_coverage < min_coverage or len(sequence) < min_length:
                self.count_rejected += 1
                continue
            if read_count >= min_reads:
                self.count_contigs += 1
                prefix, number = CONTIG_PREFIX, self.count_contigs
            elif len(path) == 1 and include_singletons:
                self.count_singletons += 1
                prefix, number = SINGLETON_PREFIX, self.count_singletons
            else:
                self.count_rejected += 1
                continue
            header = format_contig_header(prefix, number, len(sequence), read_count, average_coverage)
            self.contigs.append(Contig(header=header, sequence=sequence))

        progress.report_task_completed()
        logger.info(
            f"Built {self.count_contigs} contigs and {self.count_singletons} singletons, "
            f"rejected {self.count_rejected} paths"
        )
        return self.contigs
