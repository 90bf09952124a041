"""
In-memory reads and their candidate matches.

A :class:`ReadBlock` is the unit the assignment engine works on: one read and
the matches an aligner reported for it. Each :class:`MatchBlock` carries one
class id per classification (0 when the reference has no id there).
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .genomic_types import ClassId, NO_ID


@dataclass(slots=True)
class MatchBlock:
    """
    One alignment of a read against a reference sequence.

    Attributes:
        class_ids: Maps a classification name to the reference's class id.
        bit_score: Alignment bit score.
        expected: E-value of the alignment.
        percent_identity: Percent identity, 0 when unknown.
        ref_name: Reference sequence name, informational only.
    """

    class_ids: Dict[str, ClassId] = field(default_factory=dict)
    bit_score: float = 0.0
    expected: float = 0.0
    percent_identity: float = 0.0
    ref_name: str = ""

    def get_id(self, classification: str) -> ClassId:
        return self.class_ids.get(classification, NO_ID)


@dataclass(slots=True)
class ReadBlock:
    """
    A read with its candidate matches.

    Attributes:
        read_name: Identifier of the read.
        read_sequence: Optional nucleotide sequence.
        complexity: Sequence complexity in [0, 1]; 0 means not computed.
        matches: Candidate matches in input order.
    """

    read_name: str
    read_sequence: Optional[str] = None
    complexity: float = 0.0
    matches: List[MatchBlock] = field(default_factory=list)

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def match_at(self, index: int) -> MatchBlock:
        return self.matches[index]
