"""
Percent-support path assignment.

Instead of a single class id, a read is described by the path from the root
down the most supported branch, with the percentage of the read's matches
supporting each node on the path.
"""

import math
from typing import Dict, Iterable, Optional

from .classification import ClassificationManager, ClassificationTree, TAXONOMY
from .genomic_types import ClassId, NOHITS_ID, TaxPath, UNASSIGNED_ID
from .reads import ReadBlock


def _count_support(
    active_matches: Iterable[int],
    read: ReadBlock,
    classification: str,
    tree: ClassificationTree,
    allow_disabled: bool,
    node_counts: Dict[ClassId, int],
) -> int:
    """Add one count to every ancestor-or-self of each usable match; return the number of usable matches."""
    total = 0
    for index in sorted(active_matches):
        class_id = read.match_at(index).get_id(classification)
        if class_id <= 0 or class_id not in tree:
            continue
        if not allow_disabled and tree.is_disabled(class_id):
            continue
        total += 1
        for node_id in tree.get_ancestors(class_id):
            node_counts[node_id] = node_counts.get(node_id, 0) + 1
    return total


def compute_tax_path(
    active_matches: Iterable[int],
    read: ReadBlock,
    classification: str = TAXONOMY,
    tree: Optional[ClassificationTree] = None,
) -> TaxPath:
    """
    Compute the percent-support path of a read.

    Every active match with a known, enabled class id adds one count to its
    node and to all of that node's ancestors. If no match qualifies, disabled
    ids are allowed. Starting at the root, the path then repeatedly moves to
    the child with the strictly largest count (the first such child in tree
    order wins ties) until no child is supported.

    Args:
        active_matches: Indices of the matches to use.
        read: The read.
        classification: Name of the classification the ids are taken from.
        tree: The tree; looked up in :class:`ClassificationManager` when omitted.

    Returns:
        (class id, percent) pairs from the root to the deepest supported node.
        Percentages are rounded to whole numbers and never exceed 100.
        A read without matches yields ``[(NOHITS_ID, 100.0)]``; a read whose
        matches cannot be placed yields ``[(UNASSIGNED_ID, 100.0)]``.
    """
    if read.match_count == 0:
        return [(NOHITS_ID, 100.0)]

    if tree is None:
        tree = ClassificationManager.get(classification)

    active = list(active_matches)
    node_counts: Dict[ClassId, int] = {}
    total = _count_support(active, read, classification, tree, False, node_counts)
    if total == 0:
        total = _count_support(active, read, classification, tree, True, node_counts)

    if total == 0:
        return [(UNASSIGNED_ID, 100.0)]

    path: TaxPath = []
    node_id: Optional[ClassId] = tree.root_id
    while node_id is not None:
        count = node_counts.get(node_id, 0)
        percent = min(100.0, float(math.floor(100.0 * count / total + 0.5)))
        path.append((node_id, percent))

        best_count = 0
        best_child = None
        for child_id in tree.get_children(node_id):
            child_count = node_counts.get(child_id, 0)
            if child_count > best_count:
                best_child = child_id
                best_count = child_count
        node_id = best_child
    return path
