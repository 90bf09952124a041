import io
from typing import List, Tuple

import networkx as nx
import pytest

from taxassemble.exceptions import (
    AssemblyError,
    CanceledError,
    GraphInvariantError,
    TooManyErrorsError,
)
from taxassemble.overlap_graph import OverlapGraph, OverlapGraphBuilder, ReadData
from taxassemble.progress import ProgressListener
from taxassemble.sequence import AssemblyRead

# --- Fixtures ---


@pytest.fixture
def three_reads() -> List[Tuple[str, str]]:
    return [
        ("read1", "ACGTACGTAC"),
        ("read2", "GTACGTACGG"),
        ("read3", "CGGTTTT"),
    ]


@pytest.fixture
def three_read_builder(three_reads: List[Tuple[str, str]]) -> OverlapGraphBuilder:
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply(three_reads)
    return builder


# --- OverlapGraph ---


def test_graph_rejects_self_loops():
    graph = OverlapGraph()
    node = graph.add_node(0)
    with pytest.raises(GraphInvariantError):
        graph.add_edge(node, node, 10)


def test_graph_rejects_unknown_nodes():
    graph = OverlapGraph()
    graph.add_node(0)
    with pytest.raises(GraphInvariantError):
        graph.add_edge(0, 1, 10)


def test_graph_rejects_second_node_for_read():
    graph = OverlapGraph()
    graph.add_node(7)
    with pytest.raises(GraphInvariantError):
        graph.add_node(7)


def test_graph_keeps_longest_overlap_per_pair():
    graph = OverlapGraph()
    a, b = graph.add_node(0), graph.add_node(1)
    graph.add_edge(a, b, 5)
    graph.add_edge(a, b, 8)
    graph.add_edge(a, b, 3)
    assert graph.overlap(a, b) == 8
    assert graph.predecessors(b) == {a: 8}
    assert graph.number_of_edges == 1
    assert graph.out_degree(a) == 1
    assert graph.in_degree(a) == 0


def test_graph_invariant_error_is_an_assembly_error():
    assert issubclass(GraphInvariantError, AssemblyError)


# --- OverlapGraphBuilder ---


def test_three_read_scenario_has_single_edge(three_read_builder: OverlapGraphBuilder):
    graph = three_read_builder.overlap_graph
    assert graph.number_of_nodes == 3
    assert list(graph.edges()) == [(0, 1, 8)]
    assert three_read_builder.contained_reads == {}
    assert three_read_builder.skipped_count == 0


def test_overlap_below_minimum_is_ignored(three_reads):
    builder = OverlapGraphBuilder(min_overlap=3)
    builder.apply(three_reads)
    # read2 -> read3 overlaps by exactly three bases
    assert list(builder.overlap_graph.edges()) == [(0, 1, 8), (1, 2, 3)]


def test_sequences_are_upper_cased():
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply([("r1", "acgtacgtac"), ("r2", "gtacgtacgg")])
    assert builder.read_data[0].segment == "ACGTACGTAC"
    assert list(builder.overlap_graph.edges()) == [(0, 1, 8)]


def test_assembly_reads_are_accepted():
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply([AssemblyRead("r1", "ACGTACGTAC"), AssemblyRead("r2", "GTACGTACGG")])
    assert builder.overlap_graph.number_of_edges == 1


def test_contained_reads_get_no_node():
    reads = [
        ("long", "ACGTTGCAAGGCTTAC"),
        ("inside", "TTGCAAGG"),
        ("tiny", "GCA"),
        ("other", "CCCCCCCC"),
    ]
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply(reads)

    assert builder.read_data[1].container_id == 0
    assert builder.read_data[1].offset == 3
    # shorter than the seed length: found by direct search at the leftmost offset
    assert builder.read_data[2].container_id == 0
    assert builder.read_data[2].offset == 5
    assert builder.contained_reads == {0: [1, 2]}
    assert builder.overlap_graph.number_of_nodes == 2
    assert builder.overlap_graph.node_of_read(1) is None


def test_duplicate_reads_are_contained_in_the_first():
    builder = OverlapGraphBuilder(min_overlap=4)
    builder.apply([("a", "ACGTACGGT"), ("b", "ACGTACGGT")])
    assert builder.read_data[1].container_id == 0
    assert builder.overlap_graph.number_of_nodes == 1


def test_contained_read_is_assigned_to_longest_container():
    builder = OverlapGraphBuilder(min_overlap=4)
    builder.apply([("mid", "AACCGGTT"), ("short", "CCGG"), ("long", "TTAACCGGTTAA")])
    assert builder.read_data[0].container_id == 2
    # "short" is claimed by the longest read before "mid" gets a chance
    assert builder.read_data[1].container_id == 2
    assert builder.contained_reads == {2: [0, 1]}


def test_malformed_reads_are_skipped_and_counted():
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply([("ok", "ACGTACGTAC"), ("bad", "ACGXTACG"), ("empty", ""), ("ok2", "GTACGTACGG")])
    assert builder.skipped_count == 2
    assert [data.name for data in builder.read_data] == ["ok", "ok2"]
    assert builder.overlap_graph.number_of_edges == 1


def test_too_many_malformed_reads_raise():
    builder = OverlapGraphBuilder(min_overlap=5, max_errors=1)
    with pytest.raises(TooManyErrorsError):
        builder.apply([("bad1", "XXXX"), ("bad2", "ACGU"), ("ok", "ACGTACGT")])


def test_max_number_of_reads_caps_input(three_reads):
    builder = OverlapGraphBuilder(min_overlap=5, max_number_of_reads=2)
    builder.apply(three_reads)
    assert len(builder.read_data) == 2


def test_min_overlap_must_be_positive():
    with pytest.raises(ValueError):
        OverlapGraphBuilder(min_overlap=0)


def test_canceled_builder_raises(three_reads):
    progress = ProgressListener()
    progress.cancel()
    with pytest.raises(CanceledError):
        OverlapGraphBuilder(min_overlap=5).apply(three_reads, progress)


# --- Export ---


def test_gml_export_carries_names_sequences_and_overlaps(three_read_builder: OverlapGraphBuilder):
    handle = io.StringIO()
    nodes, edges = three_read_builder.overlap_graph.write_gml(
        handle, three_read_builder.read_data, label="bin1", comment="test graph"
    )
    assert (nodes, edges) == (3, 1)

    parsed = nx.parse_gml(handle.getvalue().splitlines())
    assert set(parsed.nodes) == {"read1", "read2", "read3"}
    assert parsed.nodes["read2"]["sequence"] == "GTACGTACGG"
    assert parsed.edges["read1", "read2"]["overlap"] == 8
    assert parsed.is_directed()


def test_to_networkx_keeps_node_indices(three_read_builder: OverlapGraphBuilder):
    graph = three_read_builder.overlap_graph.to_networkx(three_read_builder.read_data)
    assert graph.nodes[0]["label"] == "read1"
    assert graph.edges[0, 1]["overlap"] == 8


def test_gml_export_disambiguates_repeated_names():
    graph = OverlapGraph()
    graph.add_node(0)
    graph.add_node(1)
    read_data = [ReadData(0, "same", "ACGT"), ReadData(1, "same", "TTTT")]
    handle = io.StringIO()
    graph.write_gml(handle, read_data)
    parsed = nx.parse_gml(handle.getvalue().splitlines())
    assert set(parsed.nodes) == {"same_0", "same_1"}
