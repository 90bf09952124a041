"""
Classification trees and their registry.

A classification (the taxonomy, or a functional classification such as SEED
or KEGG) is a rooted tree of positive integer class ids. The tree assigns every
node a unique address (see :mod:`taxassemble.addressing`) and answers the
ancestor, child, name and rank queries the assignment engine needs.
"""

import logging
import pathlib
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import pandas as pd

from .addressing import ROOT_ADDRESS, child_address, is_ancestor_address
from .exceptions import (
    TreeLoadError,
    TreeStructureError,
    UnknownClassificationError,
)
from .genomic_types import Address, ClassId, SENTINEL_NAMES, is_valid_class_id

logger = logging.getLogger(__name__)

TAXONOMY = "Taxonomy"

REQUIRED_TREE_COLUMNS = ("id", "parent_id")


class ClassificationTree:
    """
    A rooted classification tree with address bookkeeping.

    Children keep the order in which their edges were added; this order
    defines the child indices used in addresses and the tie-break order of
    the percent-support path.

    Attributes:
        name (str): Name of the classification, e.g. "Taxonomy".
        root_id (ClassId): Id of the root node.
        disabled_ids (Set[ClassId]): Ids that assignments should avoid unless
            nothing else is available.
    """

    def __init__(
        self,
        edges: Iterable[Tuple[ClassId, ClassId]],
        root_id: ClassId,
        name: str = TAXONOMY,
        names: Optional[Dict[ClassId, str]] = None,
        ranks: Optional[Dict[ClassId, str]] = None,
        disabled_ids: Optional[Iterable[ClassId]] = None,
    ) -> None:
        """
        Build the tree from (parent, child) edges.

        Args:
            edges: (parent id, child id) pairs, in child order.
            root_id: Id of the root; must not appear as a child.
            name: Name of the classification.
            names: Optional node names.
            ranks: Optional rank names (e.g. "genus"), used for reporting.
            disabled_ids: Ids flagged as disabled.

        Raises:
            TreeStructureError: On non-positive ids, a node with two parents,
                a cycle, or nodes not reachable from the root.
        """
        if not is_valid_class_id(root_id):
            raise TreeStructureError("Root id must be positive", {"root_id": root_id})

        self.name = name
        self.root_id = root_id
        self._parent: Dict[ClassId, ClassId] = {}
        self._children: Dict[ClassId, List[ClassId]] = {root_id: []}

        for parent_id, child_id in edges:
            if not is_valid_class_id(parent_id) or not is_valid_class_id(child_id):
                raise TreeStructureError(
                    "Class ids must be positive",
                    {"parent_id": parent_id, "child_id": child_id},
                )
            if child_id == root_id:
                raise TreeStructureError("Root cannot have a parent", {"root_id": root_id})
            if child_id in self._parent:
                raise TreeStructureError(
                    "Node has more than one parent",
                    {"id": child_id, "parents": (self._parent[child_id], parent_id)},
                )
            self._parent[child_id] = parent_id
            self._children.setdefault(parent_id, []).append(child_id)
            self._children.setdefault(child_id, [])

        self.names: Dict[ClassId, str] = dict(names or {})
        self.ranks: Dict[ClassId, str] = dict(ranks or {})
        self.disabled_ids: Set[ClassId] = set(disabled_ids or ())

        self._id_to_address: Dict[ClassId, Address] = {}
        self._address_to_id: Dict[Address, ClassId] = {}
        self._compute_addresses()

    def _compute_addresses(self) -> None:
        """Assign addresses top-down; every node must be reached exactly once."""
        stack: List[Tuple[ClassId, Address]] = [(self.root_id, ROOT_ADDRESS)]
        while stack:
            node_id, address = stack.pop()
            if node_id in self._id_to_address:
                raise TreeStructureError("Cycle detected in tree", {"id": node_id})
            self._id_to_address[node_id] = address
            self._address_to_id[address] = node_id
            for index, child_id in enumerate(self._children[node_id]):
                stack.append((child_id, child_address(address, index)))

        unreachable = set(self._children) - set(self._id_to_address)
        if unreachable:
            preview = sorted(unreachable)[:5]
            raise TreeStructureError(
                "Nodes not reachable from the root",
                {"count": len(unreachable), "ids": preview},
            )

    def __len__(self) -> int:
        return len(self._id_to_address)

    def __contains__(self, class_id: ClassId) -> bool:
        return class_id in self._id_to_address

    def get_address(self, class_id: ClassId) -> Optional[Address]:
        """Address of a node, or None if the id is not in the tree."""
        return self._id_to_address.get(class_id)

    def get_address_to_id(self, address: Address) -> ClassId:
        """Id of the node at `address`, or 0 if no node has that address."""
        return self._address_to_id.get(address, 0)

    def get_parent(self, class_id: ClassId) -> Optional[ClassId]:
        """Parent id, or None for the root and for unknown ids."""
        return self._parent.get(class_id)

    def get_children(self, class_id: ClassId) -> List[ClassId]:
        return self._children.get(class_id, [])

    def get_ancestors(self, class_id: ClassId) -> List[ClassId]:
        """The node itself followed by its ancestors up to and including the root."""
        if class_id not in self:
            return []
        path = [class_id]
        parent = self._parent.get(class_id)
        while parent is not None:
            path.append(parent)
            parent = self._parent.get(parent)
        return path

    def is_ancestor(self, ancestor_id: ClassId, class_id: ClassId) -> bool:
        """True if `ancestor_id` is `class_id` or one of its ancestors."""
        a = self.get_address(ancestor_id)
        b = self.get_address(class_id)
        if a is None or b is None:
            return False
        return is_ancestor_address(a, b)

    def is_disabled(self, class_id: ClassId) -> bool:
        return class_id in self.disabled_ids

    def get_name(self, class_id: ClassId) -> str:
        if class_id in SENTINEL_NAMES:
            return SENTINEL_NAMES[class_id]
        return self.names.get(class_id, str(class_id))

    def get_rank(self, class_id: ClassId) -> Optional[str]:
        return self.ranks.get(class_id)

    @classmethod
    def from_dataframe(
        cls,
        nodes_df: pd.DataFrame,
        name: str = TAXONOMY,
        disabled_ids: Optional[Iterable[ClassId]] = None,
    ) -> "ClassificationTree":
        """
        Build a tree from a node table.

        The table needs ``id`` and ``parent_id`` columns; ``name`` and
        ``rank`` are optional. The root is the row whose ``parent_id`` is
        missing, zero, or equal to its own ``id``. Row order defines child order.
        """
        missing = [c for c in REQUIRED_TREE_COLUMNS if c not in nodes_df.columns]
        if missing:
            raise TreeLoadError("Node table is missing columns", {"missing": missing})
        if nodes_df.empty:
            raise TreeLoadError("Node table is empty")

        ids = nodes_df["id"].astype(int).tolist()
        parents = pd.to_numeric(nodes_df["parent_id"], errors="coerce").fillna(0).astype(int).tolist()

        roots = [i for i, p in zip(ids, parents) if p == 0 or p == i]
        if len(roots) != 1:
            raise TreeStructureError("Node table must contain exactly one root", {"roots": roots[:5]})

        edges = [(p, i) for i, p in zip(ids, parents) if i != roots[0]]
        names = (
            dict(zip(ids, nodes_df["name"].astype(str)))
            if "name" in nodes_df.columns
            else None
        )
        ranks = None
        if "rank" in nodes_df.columns:
            ranks = {
                i: str(r) for i, r in zip(ids, nodes_df["rank"]) if pd.notna(r) and str(r)
            }
        return cls(edges, roots[0], name=name, names=names, ranks=ranks, disabled_ids=disabled_ids)


def load_classification_tree(
    tree_path: Union[str, pathlib.Path],
    name: str = TAXONOMY,
    disabled_ids: Optional[Iterable[ClassId]] = None,
) -> ClassificationTree:
    """
    Load a tree from a tab-separated node table (columns id, parent_id, name, rank).

    Raises:
        FileNotFoundError: If the file does not exist.
        TreeLoadError: If the table cannot be parsed or lacks required columns.
    """
    tree_path = pathlib.Path(tree_path)
    if not tree_path.is_file():
        raise FileNotFoundError(f"Tree file not found: {tree_path}")

    logger.info(f"Loading {name} tree from {tree_path}")
    try:
        nodes_df = pd.read_csv(tree_path, sep="\t", dtype={"name": str, "rank": str})
    except (ValueError, pd.errors.ParserError) as e:
        raise TreeLoadError(f"Could not parse tree file {tree_path}: {e}") from e

    tree = ClassificationTree.from_dataframe(nodes_df, name=name, disabled_ids=disabled_ids)
    logger.info(f"Loaded {name} tree with {len(tree)} nodes")
    return tree


class ClassificationManager:
    """Registry of classification trees keyed by classification name."""

    _trees: Dict[str, ClassificationTree] = {}

    @classmethod
    def register(cls, tree: ClassificationTree) -> None:
        cls._trees[tree.name] = tree

    @classmethod
    def get(cls, name: str) -> ClassificationTree:
        try:
            return cls._trees[name]
        except KeyError:
            raise UnknownClassificationError(
                "No classification registered", {"name": name, "known": sorted(cls._trees)}
            ) from None

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._trees.pop(name, None)

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._trees)
