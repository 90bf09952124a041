"""
Read sequences for assembly: validation and reverse complements.
"""

from dataclasses import dataclass, field
from typing import Set

from .exceptions import InvalidSequenceError

# Allowed nucleotide characters, after upper-casing
VALID_DNA_CHARS: frozenset = frozenset("ACGTN")

_RC_TABLE = str.maketrans("ACGTNacgtn", "TGCANtgcan")


def reverse_complement(sequence: str) -> str:
    """Reverse complement of a nucleotide string; unknown characters are kept as is."""
    return sequence.translate(_RC_TABLE)[::-1]


def normalize_sequence(sequence: str) -> str:
    """
    Upper-case and validate a read sequence.

    Args:
        sequence: Raw sequence text.

    Returns:
        The upper-cased sequence with surrounding whitespace removed.

    Raises:
        InvalidSequenceError: If the sequence is empty or contains characters
            other than A, C, G, T and N.
    """
    if not isinstance(sequence, str):
        raise InvalidSequenceError(
            f"Sequence must be a string, got {type(sequence).__name__}."
        )
    normalized = sequence.strip().upper()
    if not normalized:
        raise InvalidSequenceError("Sequence must be non-empty.")

    invalid_chars: Set[str] = set(normalized) - VALID_DNA_CHARS
    if invalid_chars:
        invalid_repr = ", ".join(repr(c) for c in sorted(invalid_chars))
        raise InvalidSequenceError(
            f"Sequence contains invalid characters: {{{invalid_repr}}}. "
            f"Allowed characters: A, C, G, T, N."
        )
    return normalized


@dataclass(order=True, slots=True, frozen=True)
class AssemblyRead:
    """
    Immutable read handed to the assembler.

    Sequence data is validated and upper-cased on construction.

    Example:
        >>> read = AssemblyRead(name='read_001', sequence='acgtn')
        >>> read.sequence
        'ACGTN'
        >>> len(read)
        5
    """

    name: str = field(compare=False)
    sequence: str

    def __post_init__(self) -> None:
        # frozen: bypass __setattr__ to store the normalized value
        object.__setattr__(self, "sequence", normalize_sequence(self.sequence))

    def __len__(self) -> int:
        return len(self.sequence)

    def __str__(self) -> str:
        return self.sequence
