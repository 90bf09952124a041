"""
Selection of the matches that take part in an assignment.
"""

from typing import Optional, Set

from .genomic_types import NO_ID
from .parameter_config import MatchFilterParameters
from .reads import ReadBlock


def compute_active_matches(
    read: ReadBlock,
    classification: str,
    filters: Optional[MatchFilterParameters] = None,
) -> Set[int]:
    """
    Indices of the matches of `read` that pass the score filters.

    A match is a candidate when it has an id in `classification`, its bit
    score is at least ``min_score``, its e-value at most ``max_expected`` and
    its percent identity (when known) at least ``min_percent_identity``. Of the
    candidates, only those whose bit score lies within ``top_percent`` percent
    of the best candidate are kept.

    Args:
        read: The read to filter.
        classification: Name of the classification the ids are taken from.
        filters: Thresholds to apply; the defaults when omitted.

    Returns:
        The set of active match indices; empty if nothing passes.
    """
    if filters is None:
        filters = MatchFilterParameters()
    candidates = []
    best_score = 0.0
    for index, match in enumerate(read.matches):
        if match.get_id(classification) == NO_ID:
            continue
        if match.bit_score < filters.min_score or match.expected > filters.max_expected:
            continue
        if match.percent_identity > 0 and match.percent_identity < filters.min_percent_identity:
            continue
        candidates.append(index)
        best_score = max(best_score, match.bit_score)

    if filters.top_percent >= 100:
        return set(candidates)

    min_allowed = best_score * (1.0 - filters.top_percent / 100.0)
    return {i for i in candidates if read.matches[i].bit_score >= min_allowed}


def is_low_complexity(read: ReadBlock, min_complexity: float) -> bool:
    """
    A read is low complexity if its complexity is known and below the threshold.

    A complexity of 0 means it was not computed; such reads are never low complexity.
    """
    return read.complexity > 0 and read.complexity + 0.01 < min_complexity
