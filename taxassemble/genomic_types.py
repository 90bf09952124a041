"""
Type definitions and reserved ids for the taxassemble package.

This module centralizes common type aliases and the sentinel class ids used
throughout the assignment engine and the assembler.
"""

from typing import Dict, List, Tuple

# Type aliases for clarity
ClassId = int  # Node id in a classification tree; valid ids are positive.
Address = str  # Root-to-node path encoding of a tree node, e.g. "1.2.3".
ReadId = int  # Index of a read inside one assembly run.
ReadName = str  # Identifier of a sequence read as given in the input.
NodeIndex = int  # Index of a node in the overlap graph arena.
TaxPath = List[
    Tuple[ClassId, float]
]  # (class id, percent support) pairs from the root to the deepest supported node.
ReadAssignments = Dict[ReadName, ClassId]  # Maps a read name to its assigned class id.

# Reserved ids, never valid tree nodes.
NO_ID = 0  # The match carries no id for the classification.
NOHITS_ID = -1  # The read has no matches at all.
UNASSIGNED_ID = -2  # The read has matches, but none could be placed in the tree.
LOW_COMPLEXITY_ID = -3  # The read was flagged as low complexity.

SENTINEL_NAMES: Dict[ClassId, str] = {
    NOHITS_ID: "No hits",
    UNASSIGNED_ID: "Not assigned",
    LOW_COMPLEXITY_ID: "Low complexity",
}


def is_valid_class_id(class_id: ClassId) -> bool:
    """True for ids that may denote a tree node."""
    return class_id > 0
