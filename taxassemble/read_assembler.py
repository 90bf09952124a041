"""
Gene-centric assembly of the reads assigned to one class.

:class:`ReadAssembler` drives the stages in order: overlap graph, paths,
contigs, containment filter, output.
"""

import logging
import time
from typing import Iterable, List, Optional, TextIO, Tuple

from .containment import remove_contained_contigs, rename_contig
from .contig_builder import Contig, ContigBuilder
from .exceptions import AssemblyError
from .genomic_types import NodeIndex
from .logging_config import PerformanceLogger
from .overlap_graph import OverlapGraphBuilder, ReadInput
from .parameter_config import AssemblyParameters
from .path_extractor import PathExtractor
from .progress import ProgressListener
from .utils import write_contigs

logger = logging.getLogger(__name__)

GML_COMMENT = "Overlap graph generated by taxassemble"


class ReadAssembler:
    """
    Assembler for all reads assigned to a particular class.

    Usage::

        assembler = ReadAssembler(AssemblyParameters(min_overlap=5))
        assembler.compute_overlap_graph("bin", parse_read_file(path))
        assembler.compute_contigs()
        assembler.remove_contained_contigs()
        assembler.write_contigs(handle)
    """

    def __init__(self, parameters: Optional[AssemblyParameters] = None) -> None:
        self.parameters = parameters or AssemblyParameters()
        self.label = ""
        self.builder: Optional[OverlapGraphBuilder] = None
        self.paths: List[List[NodeIndex]] = []
        self.contigs: List[Contig] = []
        self.renumbered = False
        self.count_singletons = 0
        self.count_rejected = 0
        self.perf = PerformanceLogger()

    def _require_graph(self) -> OverlapGraphBuilder:
        if self.builder is None:
            raise AssemblyError("Overlap graph has not been computed")
        return self.builder

    def compute_overlap_graph(
        self,
        label: str,
        reads: Iterable[ReadInput],
        progress: Optional[ProgressListener] = None,
    ) -> None:
        """Build the overlap graph of `reads` and extract its paths."""
        self.label = label
        self.builder = OverlapGraphBuilder(
            self.parameters.min_overlap,
            max_number_of_reads=self.parameters.max_number_of_reads,
            max_errors=self.parameters.max_errors,
        )
        self.builder.apply(reads, progress)
        self.paths = PathExtractor(self.builder.overlap_graph).apply(progress)
        self.contigs = []
        self.renumbered = False

    def write_overlap_graph(self, handle: TextIO) -> Tuple[int, int]:
        """
        Write the overlap graph in GML.

        Returns:
            (number of nodes, number of edges)
        """
        builder = self._require_graph()
        return builder.overlap_graph.write_gml(
            handle, builder.read_data, label=self.label, comment=GML_COMMENT
        )

    def compute_contigs(self, progress: Optional[ProgressListener] = None) -> int:
        """
        Build contigs from the extracted paths.

        Returns:
            Number of contigs, not counting singletons.
        """
        builder = self._require_graph()
        start = time.perf_counter()
        contig_builder = ContigBuilder(self.paths, builder.overlap_graph, builder.contained_reads)
        self.contigs = contig_builder.apply(
            builder.read_data,
            min_reads=self.parameters.min_reads,
            min_coverage=self.parameters.min_av_coverage,
            min_length=self.parameters.min_length,
            include_singletons=self.parameters.include_singletons,
            progress=progress,
        )
        self.renumbered = False
        self.count_singletons = contig_builder.count_singletons
        self.count_rejected = contig_builder.count_rejected
        self.perf.log_throughput("compute_contigs", len(self.paths), time.perf_counter() - start)
        return contig_builder.count_contigs

    def remove_contained_contigs(self, progress: Optional[ProgressListener] = None) -> int:
        """
        Drop contigs contained in longer ones and renumber the rest.

        Returns:
            Number of removed contigs.
        """
        survivors, removed = remove_contained_contigs(
            self.contigs,
            max_percent_identity=self.parameters.max_percent_identity,
            progress=progress,
            num_threads=self.parameters.num_threads,
        )
        self.contigs = survivors
        self.renumbered = True
        return removed

    def write_contigs(self, handle: TextIO, progress: Optional[ProgressListener] = None) -> int:
        """
        Write the current contigs as two-line FASTA; returns the number written.

        Headers are always ``>Contig-NNNNNN <descriptor>``. Contigs that did not
        go through :meth:`remove_contained_contigs` are numbered in build order.
        """
        progress = progress or ProgressListener()
        progress.set_subtask("Writing contigs")
        progress.check_canceled()
        contigs = self.contigs
        if not self.renumbered:
            contigs = [rename_contig(contig, number) for number, contig in enumerate(contigs, start=1)]
        count = write_contigs(contigs, handle)
        progress.report_task_completed()
        logger.info(f"Wrote {count} contigs for {self.label or 'reads'}")
        return count

    def get_contigs(self) -> List[Contig]:
        return list(self.contigs)
