import io
import pathlib

import pandas as pd
import pytest

from taxassemble.classification import ClassificationTree
from taxassemble.genomic_types import NOHITS_ID
from taxassemble.output import AssignmentReporter, rank_letter, write_table

ESCHERICHIA_PATH = [(1, 100.0), (2, 100.0), (10, 100.0), (100, 100.0), (1000, 50.0)]


@pytest.fixture
def clade_tree() -> ClassificationTree:
    """root(1) -> Bacteria(2, superkingdom) -> Terrabacteria(3, no rank) -> Bacillus(4, genus)."""
    return ClassificationTree(
        [(1, 2), (2, 3), (3, 4)],
        root_id=1,
        name="Clades",
        names={1: "root", 2: "Bacteria", 3: "Terrabacteria", 4: "Bacillus"},
        ranks={2: "superkingdom", 3: "no rank", 4: "genus"},
    )


@pytest.mark.parametrize(
    "rank, expected",
    [("superkingdom", "d"), ("Domain", "d"), ("phylum", "p"), ("genus", "g"), (None, None), ("", None)],
)
def test_rank_letter(rank, expected):
    assert rank_letter(rank) == expected


# --- Taxon paths ---


def test_path_line_skips_root_and_prefixes_ranks(tree):
    reporter = AssignmentReporter(tree)
    assert reporter.format_taxon_path("r1", ESCHERICHIA_PATH) == (
        "r1; ;d__Bacteria; 100;p__Proteobacteria; 100;c__Gammaproteobacteria; 100;g__Escherichia; 50;"
    )


def test_path_line_without_rank_letters(tree):
    reporter = AssignmentReporter(tree, show_rank=False)
    assert reporter.format_taxon_path("r1", ESCHERICHIA_PATH[:3]) == "r1; ; Bacteria; 100; Proteobacteria; 100;"


def test_path_line_with_ids(tree):
    reporter = AssignmentReporter(tree, show_ids=True)
    assert reporter.format_taxon_path("r1", ESCHERICHIA_PATH[:3]) == "r1; ;d__2; 100;p__10; 100;"


def test_unranked_nodes_are_written_plain_or_skipped(clade_tree):
    path = [(1, 100.0), (2, 100.0), (3, 80.0), (4, 67.0)]
    assert AssignmentReporter(clade_tree).format_taxon_path("q", path) == (
        "q; ;d__Bacteria; 100; Terrabacteria; 80;g__Bacillus; 67;"
    )
    assert AssignmentReporter(clade_tree, official_ranks_only=True).format_taxon_path("q", path) == (
        "q; ;d__Bacteria; 100;g__Bacillus; 67;"
    )


def test_sentinel_path_line(tree):
    reporter = AssignmentReporter(tree)
    assert reporter.format_taxon_path("r9", [(NOHITS_ID, 100.0)]) == "r9; ; No hits; 100;"


def test_write_taxon_paths_one_line_per_read(tree):
    handle = io.StringIO()
    count = AssignmentReporter(tree).write_taxon_paths(
        [("a", ESCHERICHIA_PATH[:2]), ("b", [(NOHITS_ID, 100.0)])], handle
    )
    assert count == 2
    assert handle.getvalue() == "a; ;d__Bacteria; 100;\nb; ; No hits; 100;\n"


# --- Tables ---


@pytest.fixture
def assignments():
    return {"r1": 1000, "r2": 1000, "r3": NOHITS_ID, "r4": 10}


def test_assignment_table(tree, assignments):
    table = AssignmentReporter(tree).build_assignment_table(assignments)
    assert list(table.columns) == ["read_name", "class_id", "class_name"]
    assert table["class_name"].tolist() == ["Escherichia", "Escherichia", "No hits", "Proteobacteria"]


def test_summary_table_sorted_by_count_then_id(tree, assignments):
    summary = AssignmentReporter(tree).build_summary_table(assignments)
    assert summary["class_id"].tolist() == [1000, NOHITS_ID, 10]
    assert summary["read_count"].tolist() == [2, 1, 1]
    assert summary["percent"].tolist() == [50.0, 25.0, 25.0]
    assert summary["rank"].tolist() == ["genus", "", "phylum"]


def test_summary_of_nothing_is_empty(tree):
    reporter = AssignmentReporter(tree)
    assert reporter.build_summary_table({}).empty
    assert reporter.generate_report_string({}) == "No reads were assigned."


def test_report_string(tree, assignments):
    report = AssignmentReporter(tree).generate_report_string(assignments, top=1)
    assert report.splitlines() == ["Assigned 4 reads to 3 classes:", "  Escherichia: 2 (50.00%)"]


def test_write_table_creates_directories(tmp_path: pathlib.Path, tree, assignments):
    table = AssignmentReporter(tree).build_assignment_table(assignments)
    path = write_table(table, tmp_path / "nested" / "out.tsv")
    assert path.exists()
    round_tripped = pd.read_csv(path, sep="\t")
    assert round_tripped["class_id"].tolist() == [1000, 1000, NOHITS_ID, 10]
