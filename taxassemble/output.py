"""
Output formatting for read assignments: taxon path lines, assignment tables
and per-class summaries.
"""

import logging
import pathlib
from collections import Counter
from typing import Iterable, List, Optional, TextIO, Tuple, Union

import pandas as pd

from .classification import ClassificationTree
from .exceptions import OutputWriteError
from .genomic_types import ClassId, ReadAssignments, ReadName, SENTINEL_NAMES, TaxPath

logger = logging.getLogger(__name__)

OFFICIAL_RANKS = frozenset(
    {"domain", "superkingdom", "kingdom", "phylum", "class", "order", "family", "genus", "species"}
)
DOMAIN_RANKS = frozenset({"domain", "superkingdom"})


def rank_letter(rank: Optional[str]) -> Optional[str]:
    """Single-letter prefix used in path output, e.g. 'p' for phylum; None if unknown."""
    if not rank:
        return None
    rank = rank.strip().lower()
    if rank in DOMAIN_RANKS:
        return "d"
    return rank[0] if rank else None


class AssignmentReporter:
    """
    Renders assignments made in one classification tree.

    Handles taxon path lines, per-read assignment tables and per-class read
    count summaries.
    """

    def __init__(
        self,
        tree: ClassificationTree,
        show_rank: bool = True,
        official_ranks_only: bool = False,
        show_ids: bool = False,
    ):
        """
        Args:
            tree: The tree the class ids belong to.
            show_rank: Prefix path entries with a rank letter, ``p__Name``.
            official_ranks_only: Leave out path nodes without an official rank.
            show_ids: Print class ids instead of names.
        """
        self.tree = tree
        self.show_rank = show_rank
        self.official_ranks_only = official_ranks_only
        self.show_ids = show_ids

    def _label(self, class_id: ClassId) -> str:
        return str(class_id) if self.show_ids else self.tree.get_name(class_id)

    def format_taxon_path(self, read_name: ReadName, path: TaxPath) -> str:
        """
        One output line for a read: ``name; ;d__Bacteria; 100;p__Proteobacteria; 90;``.

        The root is omitted. Nodes without a known rank are written as
        `` name; percent;`` unless ``official_ranks_only`` is set, in which
        case they are skipped. Percentages are truncated to integers.
        """
        parts = [f"{read_name}; ;"]
        for class_id, percent in path:
            if class_id == self.tree.root_id:
                continue
            rank = self.tree.get_rank(class_id)
            official = rank is not None and rank.strip().lower() in OFFICIAL_RANKS
            if self.official_ranks_only and not official:
                continue
            letter = rank_letter(rank) if official else None
            if self.show_rank and letter is not None:
                parts.append(f"{letter}__{self._label(class_id)}; {int(percent)};")
            else:
                parts.append(f" {self._label(class_id)}; {int(percent)};")
        return "".join(parts)

    def write_taxon_paths(self, paths: Iterable[Tuple[ReadName, TaxPath]], handle: TextIO) -> int:
        """Write one path line per read; returns the number of lines."""
        count = 0
        for read_name, path in paths:
            handle.write(self.format_taxon_path(read_name, path) + "\n")
            count += 1
        return count

    def build_assignment_table(self, assignments: ReadAssignments) -> pd.DataFrame:
        """Per-read table with columns read_name, class_id, class_name."""
        rows = [
            {"read_name": name, "class_id": class_id, "class_name": self.tree.get_name(class_id)}
            for name, class_id in assignments.items()
        ]
        return pd.DataFrame(rows, columns=["read_name", "class_id", "class_name"])

    def calculate_class_counts(self, assignments: ReadAssignments) -> Counter:
        return Counter(assignments.values())

    def build_summary_table(self, assignments: ReadAssignments) -> pd.DataFrame:
        """
        Read counts per assigned class, sorted by decreasing count then class id.

        Sentinel assignments (no hits, not assigned, low complexity) are listed
        like classes so that counts always add up to the number of reads.
        """
        counts = self.calculate_class_counts(assignments)
        total = sum(counts.values())
        rows = []
        for class_id, count in counts.items():
            rows.append(
                {
                    "class_id": class_id,
                    "class_name": self.tree.get_name(class_id),
                    "rank": "" if class_id in SENTINEL_NAMES else (self.tree.get_rank(class_id) or ""),
                    "read_count": count,
                    "percent": round(100.0 * count / total, 2) if total else 0.0,
                }
            )
        summary = pd.DataFrame(rows, columns=["class_id", "class_name", "rank", "read_count", "percent"])
        if not summary.empty:
            summary = summary.sort_values(
                ["read_count", "class_id"], ascending=[False, True]
            ).reset_index(drop=True)
        return summary

    def generate_report_string(self, assignments: ReadAssignments, top: int = 10) -> str:
        """Short human-readable summary of the most frequent classes."""
        summary = self.build_summary_table(assignments)
        if summary.empty:
            return "No reads were assigned."
        lines: List[str] = [f"Assigned {len(assignments)} reads to {len(summary)} classes:"]
        for row in summary.head(top).itertuples(index=False):
            lines.append(f"  {row.class_name}: {row.read_count} ({row.percent:.2f}%)")
        return "\n".join(lines)


def write_table(table: pd.DataFrame, output_path: Union[str, pathlib.Path]) -> pathlib.Path:
    """
    Write a table as TSV, creating parent directories.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    output_path = pathlib.Path(output_path)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        table.to_csv(output_path, sep="\t", index=False)
    except OSError as e:
        raise OutputWriteError(f"Could not write {output_path}: {e}") from e
    logger.info(f"Wrote {len(table)} rows to {output_path}")
    return output_path
