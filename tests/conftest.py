import pathlib
from typing import Callable, Iterable, List, Tuple

import pytest

from taxassemble.classification import TAXONOMY, ClassificationManager, ClassificationTree
from taxassemble.reads import MatchBlock, ReadBlock

# root(1)
# +-- Bacteria(2)                       "1"
# |   +-- Proteobacteria(10)            "1.1"
# |   |   +-- Gammaproteobacteria(100)  "1.1.1"
# |   |   |   +-- Escherichia(1000)     "1.1.1.1"
# |   |   |   +-- Salmonella(1001)      "1.1.1.2"
# |   |   +-- Alphaproteobacteria(101)  "1.1.2"
# |   +-- Firmicutes(20)                "1.2"
# |       +-- Bacilli(200)              "1.2.1"
# |       +-- unclassified Firmicutes(201, disabled) "1.2.2"
# +-- Archaea(3)                        "2"
TREE_EDGES: List[Tuple[int, int]] = [
    (1, 2),
    (1, 3),
    (2, 10),
    (2, 20),
    (10, 100),
    (10, 101),
    (100, 1000),
    (100, 1001),
    (20, 200),
    (20, 201),
]
TREE_NAMES = {
    1: "root",
    2: "Bacteria",
    3: "Archaea",
    10: "Proteobacteria",
    20: "Firmicutes",
    100: "Gammaproteobacteria",
    101: "Alphaproteobacteria",
    200: "Bacilli",
    201: "unclassified Firmicutes",
    1000: "Escherichia",
    1001: "Salmonella",
}
TREE_RANKS = {
    2: "superkingdom",
    3: "superkingdom",
    10: "phylum",
    20: "phylum",
    100: "class",
    101: "class",
    200: "class",
    1000: "genus",
    1001: "genus",
}
DISABLED_IDS = {201}


@pytest.fixture
def tree() -> ClassificationTree:
    """Small taxonomy with one disabled node, registered for the test's duration."""
    tree = ClassificationTree(
        TREE_EDGES,
        root_id=1,
        name=TAXONOMY,
        names=TREE_NAMES,
        ranks=TREE_RANKS,
        disabled_ids=DISABLED_IDS,
    )
    ClassificationManager.register(tree)
    yield tree
    ClassificationManager.unregister(TAXONOMY)


@pytest.fixture
def make_read() -> Callable[..., ReadBlock]:
    """Factory for reads: make_read("r1", [(class_id, bit_score), ...])."""

    def _make_read(
        name: str,
        hits: Iterable[Tuple[int, float]] = (),
        complexity: float = 0.0,
    ) -> ReadBlock:
        matches = [
            MatchBlock(class_ids={TAXONOMY: class_id}, bit_score=score, expected=0.0)
            for class_id, score in hits
        ]
        return ReadBlock(read_name=name, complexity=complexity, matches=matches)

    return _make_read


@pytest.fixture
def tree_file(tmp_path: pathlib.Path) -> pathlib.Path:
    """The fixture tree as a tab-separated node table."""
    path = tmp_path / "tree.tsv"
    parents = {child: parent for parent, child in TREE_EDGES}
    lines = ["id\tparent_id\tname\trank"]
    for node_id in [1] + [child for _, child in TREE_EDGES]:
        lines.append(
            f"{node_id}\t{parents.get(node_id, 0)}\t{TREE_NAMES[node_id]}\t{TREE_RANKS.get(node_id, '')}"
        )
    path.write_text("\n".join(lines) + "\n")
    return path
