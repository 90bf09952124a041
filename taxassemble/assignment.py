"""
Assignment algorithms: map the active matches of a read to one class id.

All algorithms share the capability described by :class:`AssignmentAlgorithm`
and are selected by :func:`create_assignment_algorithm` from an
:class:`~taxassemble.parameter_config.AssignmentParameters` instance.

- :class:`AssignmentUsingLCA` -- naive LCA over tree addresses.
- :class:`AssignmentUsingWeightedLCA` -- descend while one child holds most of
  the bit-score weight.
- :class:`AssignmentUsingTaxonPath` -- deepest node of the percent-support path.
"""

import logging
from typing import Collection, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from .addressing import get_common_prefix, remove_nested_addresses
from .classification import ClassificationManager, ClassificationTree
from .exceptions import InvalidParameterError
from .genomic_types import (
    Address,
    ClassId,
    NOHITS_ID,
    UNASSIGNED_ID,
    is_valid_class_id,
)
from .parameter_config import AssignmentParameters
from .reads import ReadBlock
from .taxon_path import compute_tax_path

logger = logging.getLogger(__name__)

INITIAL_ADDRESS_CAPACITY = 1000


@runtime_checkable
class AssignmentAlgorithm(Protocol):
    """Anything that turns the active matches of a read into a class id."""

    def compute_assignment(self, active_matches: Collection[int], read: ReadBlock) -> ClassId:
        ...


class AssignmentUsingLCA:
    """
    Lowest common ancestor of the classes hit by a read.

    The addresses of all usable hits are sorted, addresses that are ancestors
    of another hit are dropped (a hit to a more specific node is preferred),
    and the node addressed by the common prefix of the rest is returned.

    The address list is a scratch buffer owned by the instance and reused
    across calls, so one instance must not be shared between threads. Create
    one instance per worker instead.
    """

    def __init__(self, classification: str, tree: Optional[ClassificationTree] = None) -> None:
        self.classification = classification
        self.tree = tree if tree is not None else ClassificationManager.get(classification)
        self._addresses: List[Address] = [""] * INITIAL_ADDRESS_CAPACITY

    def _add_address(self, count: int, address: Address) -> int:
        if count >= len(self._addresses):
            self._addresses.extend([""] * len(self._addresses))
        self._addresses[count] = address
        return count + 1

    def _collect_addresses(
        self, active_matches: List[int], read: ReadBlock, allow_disabled: bool
    ) -> Tuple[int, bool]:
        """Fill the scratch buffer; return (number of addresses, whether a disabled hit was skipped)."""
        count = 0
        skipped_disabled = False
        for index in active_matches:
            class_id = read.match_at(index).get_id(self.classification)
            if class_id <= 0:
                continue
            if not allow_disabled and self.tree.is_disabled(class_id):
                skipped_disabled = True
                continue
            address = self.tree.get_address(class_id)
            if address is not None:
                count = self._add_address(count, address)
        return count, skipped_disabled

    def compute_assignment(self, active_matches: Collection[int], read: ReadBlock) -> ClassId:
        """
        Determine the class id of a read from its active matches.

        Returns:
            ``NOHITS_ID`` if the read has no matches, ``UNASSIGNED_ID`` if no
            active match can be placed in the tree, else the LCA id.
        """
        if read.match_count == 0:
            return NOHITS_ID
        if not active_matches:
            return UNASSIGNED_ID

        ordered = sorted(active_matches)
        count, skipped_disabled = self._collect_addresses(ordered, read, allow_disabled=False)
        # Only disabled classes were hit: use them rather than giving up
        if count == 0 and skipped_disabled:
            count, _ = self._collect_addresses(ordered, read, allow_disabled=True)
        if count == 0:
            return UNASSIGNED_ID

        buffer = self._addresses
        buffer[:count] = sorted(buffer[:count])
        count = remove_nested_addresses(buffer, count)

        class_id = self.tree.get_address_to_id(get_common_prefix(buffer, count))
        if is_valid_class_id(class_id):
            return class_id
        return UNASSIGNED_ID


class AssignmentUsingWeightedLCA:
    """
    LCA that tolerates a minority of off-target hits.

    Each usable hit contributes its bit score (at least 1) to its node and all
    ancestors. Starting at the root, the algorithm descends into the child
    that carries at least `percent_to_cover` percent of the total weight and
    stops when no child does.
    """

    def __init__(
        self,
        classification: str,
        percent_to_cover: float = 80.0,
        tree: Optional[ClassificationTree] = None,
    ) -> None:
        if not 50.0 < percent_to_cover <= 100.0:
            raise InvalidParameterError(
                "percent_to_cover must be in (50, 100]", {"percent_to_cover": percent_to_cover}
            )
        self.classification = classification
        self.percent_to_cover = percent_to_cover
        self.tree = tree if tree is not None else ClassificationManager.get(classification)

    def _accumulate(
        self, active_matches: List[int], read: ReadBlock, allow_disabled: bool
    ) -> Dict[ClassId, float]:
        weights: Dict[ClassId, float] = {}
        for index in active_matches:
            match = read.match_at(index)
            class_id = match.get_id(self.classification)
            if class_id <= 0 or class_id not in self.tree:
                continue
            if not allow_disabled and self.tree.is_disabled(class_id):
                continue
            weight = max(match.bit_score, 1.0)
            for node_id in self.tree.get_ancestors(class_id):
                weights[node_id] = weights.get(node_id, 0.0) + weight
        return weights

    def compute_assignment(self, active_matches: Collection[int], read: ReadBlock) -> ClassId:
        if read.match_count == 0:
            return NOHITS_ID
        if not active_matches:
            return UNASSIGNED_ID

        ordered = sorted(active_matches)
        weights = self._accumulate(ordered, read, allow_disabled=False)
        if not weights:
            weights = self._accumulate(ordered, read, allow_disabled=True)
        total = weights.get(self.tree.root_id, 0.0)
        if total <= 0:
            return UNASSIGNED_ID

        required = total * self.percent_to_cover / 100.0
        node_id = self.tree.root_id
        while True:
            next_id = None
            for child_id in self.tree.get_children(node_id):
                if weights.get(child_id, 0.0) >= required:
                    next_id = child_id
                    break
            if next_id is None:
                return node_id
            node_id = next_id


class AssignmentUsingTaxonPath:
    """Deepest node on the percent-support path with enough support."""

    def __init__(
        self,
        classification: str,
        min_support_percent: float = 0.0,
        tree: Optional[ClassificationTree] = None,
    ) -> None:
        self.classification = classification
        self.min_support_percent = min_support_percent
        self.tree = tree if tree is not None else ClassificationManager.get(classification)

    def compute_assignment(self, active_matches: Collection[int], read: ReadBlock) -> ClassId:
        if read.match_count > 0 and not active_matches:
            return UNASSIGNED_ID
        path = compute_tax_path(active_matches, read, self.classification, self.tree)
        class_id = path[0][0]
        for node_id, percent in path:
            if percent < self.min_support_percent:
                break
            class_id = node_id
        return class_id


def create_assignment_algorithm(
    parameters: AssignmentParameters,
    tree: Optional[ClassificationTree] = None,
) -> AssignmentAlgorithm:
    """
    Instantiate the algorithm named in `parameters`.

    Args:
        parameters: Algorithm selection and settings.
        tree: Tree to use; looked up by classification name when omitted.
    """
    name = parameters.classification
    if parameters.algorithm == "lca":
        algorithm: AssignmentAlgorithm = AssignmentUsingLCA(name, tree=tree)
    elif parameters.algorithm == "weighted-lca":
        algorithm = AssignmentUsingWeightedLCA(
            name, percent_to_cover=parameters.percent_to_cover, tree=tree
        )
    elif parameters.algorithm == "path":
        algorithm = AssignmentUsingTaxonPath(
            name, min_support_percent=parameters.min_support_percent, tree=tree
        )
    else:
        raise InvalidParameterError("Unknown assignment algorithm", {"algorithm": parameters.algorithm})
    logger.debug(f"Created {type(algorithm).__name__} for classification {name}")
    return algorithm
