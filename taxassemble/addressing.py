"""
Tree addresses and their use for lowest-common-ancestor computations.

An address encodes the path from the root of a classification tree to a node
as the 1-based child index taken at each level, joined by ``"."``. The root
has the empty address. A node is an ancestor of another node exactly when its
address is a whole-token prefix of the other node's address, so the LCA of a
set of nodes is the node addressed by the longest common whole-token prefix of
their addresses.
"""

import os
from typing import List, Optional, Sequence

from .genomic_types import Address

ADDRESS_SEPARATOR = "."
ROOT_ADDRESS: Address = ""


def child_address(parent: Address, index: int) -> Address:
    """Address of the `index`-th (0-based) child of the node at `parent`."""
    if index < 0:
        raise ValueError(f"Child index must be non-negative, got {index}.")
    token = str(index + 1)
    if parent == ROOT_ADDRESS:
        return token
    return parent + ADDRESS_SEPARATOR + token


def address_depth(address: Address) -> int:
    """Number of edges between the root and the addressed node."""
    if address == ROOT_ADDRESS:
        return 0
    return address.count(ADDRESS_SEPARATOR) + 1


def is_ancestor_address(ancestor: Address, address: Address) -> bool:
    """
    Return True if `ancestor` addresses the same node as `address` or one of
    its ancestors.

    A plain ``startswith`` is not enough: ``"1.1"`` is a character prefix of
    ``"1.12"`` but the nodes are siblings.
    """
    if ancestor == ROOT_ADDRESS or ancestor == address:
        return True
    return address.startswith(ancestor + ADDRESS_SEPARATOR)


def get_common_prefix(addresses: Sequence[Address], count: Optional[int] = None) -> Address:
    """
    Longest common prefix of the first `count` addresses, trimmed to whole tokens.

    Args:
        addresses: Addresses to intersect. Only the first `count` entries are read.
        count: Number of entries to use, defaults to all of them.

    Returns:
        The address of the deepest node that is an ancestor-or-self of every
        given address. An empty input yields the root address.
    """
    if count is None:
        count = len(addresses)
    if count <= 0:
        return ROOT_ADDRESS
    if count == 1:
        return addresses[0]

    used = addresses[:count]
    prefix = os.path.commonprefix(list(used))
    length = len(prefix)

    # The prefix denotes a node only if it ends on a token boundary in every address
    if all(len(a) == length or a[length] == ADDRESS_SEPARATOR for a in used):
        return prefix

    cut = prefix.rfind(ADDRESS_SEPARATOR)
    if cut < 0:
        return ROOT_ADDRESS
    return prefix[:cut]


def remove_nested_addresses(addresses: List[Address], count: Optional[int] = None) -> int:
    """
    Compact a sorted address list in place, dropping every entry that is an
    ancestor (or duplicate) of the entry that follows it.

    In lexicographic order the descendants of a node form a contiguous block
    right after the node, so checking neighbours is sufficient.

    Args:
        addresses: Sorted addresses; the list is modified in place.
        count: Number of leading entries in use, defaults to ``len(addresses)``.

    Returns:
        The number of entries in use after compaction.
    """
    if count is None:
        count = len(addresses)

    pos = 0
    for i in range(count):
        if i + 1 < count and is_ancestor_address(addresses[i], addresses[i + 1]):
            continue
        addresses[pos] = addresses[i]
        pos += 1
    return pos


def lowest_common_ancestor_address(addresses: List[Address]) -> Address:
    """Sort, drop nested entries and intersect; convenience wrapper for callers without scratch buffers."""
    working = sorted(addresses)
    count = remove_nested_addresses(working)
    return get_common_prefix(working, count)
