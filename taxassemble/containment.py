"""
Concurrent removal of contigs contained in longer contigs.

Contigs are sorted by decreasing length (ties by header). A contig is removed
when it, or its reverse complement, is contained in an earlier contig of that
order: as an exact substring when the identity threshold is 100%, otherwise by
a local alignment whose identities cover at least the threshold percentage of
the candidate's full length.

Candidates are tested in a thread pool. The only state shared between workers
is a :class:`RemovedMarkers` array whose entries are only ever set. Each
candidate reads one snapshot of it before its comparison loop.

In exact mode a candidate skips containers already removed when its snapshot
was taken; exact containment is transitive, so the outcome is the same. With
an identity threshold below 100% every longer contig is tried as a container,
removed or not, so the result does not depend on thread timing.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence, Tuple

from Bio.Align import PairwiseAligner

from .contig_builder import Contig
from .exceptions import CanceledError, InvalidParameterError
from .logging_config import PerformanceLogger
from .progress import ProgressListener
from .sequence import reverse_complement

logger = logging.getLogger(__name__)

RENAMED_CONTIG_PREFIX = "Contig"


def default_thread_count(task_count: Optional[int] = None) -> int:
    """Available cores minus one, at least 1 and at most `task_count` when given."""
    threads = max(1, (os.cpu_count() or 1) - 1)
    if task_count is not None:
        threads = max(1, min(threads, task_count))
    return threads


class RemovedMarkers:
    """Lock-guarded removal flags, one per contig. Flags are never cleared."""

    def __init__(self, size: int) -> None:
        self._flags = bytearray(size)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._flags)

    def __getitem__(self, index: int) -> bool:
        with self._lock:
            return bool(self._flags[index])

    def mark(self, index: int) -> None:
        with self._lock:
            self._flags[index] = 1

    def snapshot(self) -> bytes:
        """Copy of all flags, read under a single lock acquisition."""
        with self._lock:
            return bytes(self._flags)

    def count(self) -> int:
        with self._lock:
            return sum(self._flags)


class ContainmentAligner:
    """
    Local alignment of a candidate against a longer sequence.

    One instance per thread: ``PairwiseAligner`` objects are not shared.
    """

    def __init__(self) -> None:
        self.aligner = PairwiseAligner()
        self.aligner.mode = "local"
        self.aligner.match_score = 1.0
        self.aligner.mismatch_score = -2.0
        self.aligner.open_gap_score = -3.0
        self.aligner.extend_gap_score = -1.0

    def count_identities(self, candidate: str, container: str) -> int:
        """Number of identical aligned positions in the best local alignment."""
        if not candidate or not container:
            return 0
        alignments = self.aligner.align(container, candidate)
        try:
            alignment = alignments[0]
        except IndexError:
            return 0
        identities = 0
        for (t_start, t_end), (q_start, _q_end) in zip(*alignment.aligned):
            for offset in range(t_end - t_start):
                if container[t_start + offset] == candidate[q_start + offset]:
                    identities += 1
        return identities

    def percent_identity(self, candidate: str, container: str) -> float:
        """Identities of the best local alignment as a percentage of the candidate length."""
        if not candidate:
            return 0.0
        return 100.0 * self.count_identities(candidate, container) / len(candidate)


def is_contained(
    candidate: str,
    container: str,
    max_percent_identity: float = 100.0,
    aligner: Optional[ContainmentAligner] = None,
) -> bool:
    """
    Whether `candidate` or its reverse complement is contained in `container`.

    Args:
        candidate: The shorter sequence.
        container: The longer sequence.
        max_percent_identity: 100 (or more) for exact containment, else the
            minimum alignment identity over the candidate's length.
        aligner: Aligner to reuse; a new one is created if omitted.
    """
    if len(candidate) > len(container):
        return False
    reverse = reverse_complement(candidate)
    if max_percent_identity >= 100.0:
        return candidate in container or reverse in container

    aligner = aligner or ContainmentAligner()
    return (
        aligner.percent_identity(candidate, container) >= max_percent_identity
        or aligner.percent_identity(reverse, container) >= max_percent_identity
    )


def rename_contig(contig: Contig, number: int) -> Contig:
    """Contig with the header ``>Contig-NNNNNN <descriptor>``."""
    return Contig(header=f">{RENAMED_CONTIG_PREFIX}-{number:06d} {contig.descriptor}", sequence=contig.sequence)


def remove_contained_contigs(
    contigs: Sequence[Contig],
    max_percent_identity: float = 100.0,
    progress: Optional[ProgressListener] = None,
    num_threads: Optional[int] = None,
) -> Tuple[List[Contig], int]:
    """
    Remove contigs that are contained in longer ones and renumber the rest.

    Args:
        contigs: Contigs to filter.
        max_percent_identity: Containment threshold in percent (100 = exact).
        progress: Optional progress listener, also used for cancellation.
        num_threads: Worker count; defaults to cores minus one.

    Returns:
        (surviving contigs in length order, renamed ``>Contig-NNNNNN ...``;
        number of removed contigs)

    Raises:
        InvalidParameterError: If `max_percent_identity` is not positive.
        CanceledError: If the progress listener was canceled. No partial
            result is returned in that case.
    """
    if max_percent_identity <= 0:
        raise InvalidParameterError(
            "max_percent_identity must be positive", {"max_percent_identity": max_percent_identity}
        )
    progress = progress or ProgressListener()
    start = time.perf_counter()

    ordered = sorted(contigs, key=lambda c: (-len(c.sequence), c.header))
    sequences = [c.sequence for c in ordered]
    removed = RemovedMarkers(len(ordered))
    exact = max_percent_identity >= 100.0
    local = threading.local()

    def check_candidate(index: int) -> None:
        progress.check_canceled()
        candidate = sequences[index]
        aligner = None
        if not exact:
            aligner = getattr(local, "aligner", None)
            if aligner is None:
                aligner = local.aligner = ContainmentAligner()
        removed_before = removed.snapshot() if exact else None
        for other in range(index):
            if removed_before is not None and removed_before[other]:
                continue
            if is_contained(candidate, sequences[other], max_percent_identity, aligner):
                removed.mark(index)
                logger.debug(
                    f"Removed contig '{ordered[index].descriptor}', contained in '{ordered[other].descriptor}'"
                )
                break
        progress.increment_progress()

    progress.set_subtask("Removing contained contigs")
    progress.set_maximum(max(0, len(ordered) - 1))
    if len(ordered) > 1:
        threads = num_threads if num_threads and num_threads > 0 else default_thread_count(len(ordered))
        logger.debug(f"Testing {len(ordered) - 1} contigs for containment using {threads} threads")
        with ThreadPoolExecutor(max_workers=threads) as executor:
            futures = [executor.submit(check_candidate, index) for index in range(1, len(ordered))]
            try:
                for future in as_completed(futures):
                    future.result()
            except CanceledError:
                for future in futures:
                    future.cancel()
                logger.info("Containment filter canceled")
                raise
    progress.check_canceled()
    progress.report_task_completed()

    final_flags = removed.snapshot()
    survivors = [
        rename_contig(contig, number)
        for number, contig in enumerate(
            (c for index, c in enumerate(ordered) if not final_flags[index]), start=1
        )
    ]
    removed_count = len(ordered) - len(survivors)
    logger.info(f"Removed {removed_count} contained contigs, {len(survivors)} remain")
    PerformanceLogger().log_operation_time(
        "remove_contained_contigs", time.perf_counter() - start, contigs=len(ordered)
    )
    return survivors, removed_count
