from typing import List, Tuple

import pytest

from taxassemble.exceptions import CanceledError
from taxassemble.overlap_graph import OverlapGraph, OverlapGraphBuilder
from taxassemble.path_extractor import PathExtractor
from taxassemble.progress import ProgressListener


def _graph(node_count: int, edges: List[Tuple[int, int, int]]) -> OverlapGraph:
    graph = OverlapGraph()
    for read_id in range(node_count):
        graph.add_node(read_id)
    for source, target, overlap in edges:
        graph.add_edge(source, target, overlap)
    return graph


def _assert_partition(paths: List[List[int]], node_count: int) -> None:
    nodes = [node for path in paths for node in path]
    assert sorted(nodes) == list(range(node_count))


def test_three_read_scenario_paths():
    builder = OverlapGraphBuilder(min_overlap=5)
    builder.apply([("read1", "ACGTACGTAC"), ("read2", "GTACGTACGG"), ("read3", "CGGTTTT")])
    paths = PathExtractor(builder.overlap_graph).apply()
    assert paths == [[0, 1], [2]]


def test_chain_is_one_path():
    paths = PathExtractor(_graph(4, [(2, 3, 10), (0, 1, 10), (1, 2, 10)])).apply()
    assert paths == [[0, 1, 2, 3]]


def test_branch_follows_longest_overlap():
    # 0 -> 1 (overlap 5), 0 -> 2 (overlap 9)
    paths = PathExtractor(_graph(3, [(0, 1, 5), (0, 2, 9)])).apply()
    assert paths == [[0, 2], [1]]


def test_branch_tie_goes_to_lowest_node():
    paths = PathExtractor(_graph(3, [(0, 2, 7), (0, 1, 7)])).apply()
    assert paths == [[0, 1], [2]]


def test_merge_point_is_reached_from_lowest_start():
    # 0 -> 2 and 1 -> 2: node 2 joins the path of node 0
    paths = PathExtractor(_graph(4, [(0, 2, 6), (1, 2, 6), (2, 3, 6)])).apply()
    assert paths == [[0, 2, 3], [1]]


def test_path_starts_prefer_nodes_without_predecessors():
    # node 0 has a predecessor (3), so the walk starts at 3
    paths = PathExtractor(_graph(4, [(3, 0, 8), (0, 1, 8), (1, 2, 8)])).apply()
    assert paths == [[3, 0, 1, 2]]


def test_pure_cycle_terminates_and_starts_at_lowest_node():
    paths = PathExtractor(_graph(3, [(1, 2, 5), (2, 0, 5), (0, 1, 5)])).apply()
    assert paths == [[0, 1, 2]]


def test_cycle_with_entry_point():
    # 3 -> 0, and 0 -> 1 -> 2 -> 0 forms a cycle
    graph = _graph(4, [(3, 0, 5), (0, 1, 5), (1, 2, 5), (2, 0, 5)])
    paths = PathExtractor(graph).apply()
    assert paths == [[3, 0, 1, 2]]


def test_every_node_is_in_exactly_one_path():
    edges = [(0, 1, 5), (0, 2, 6), (1, 3, 5), (2, 3, 5), (3, 4, 5), (4, 1, 7), (5, 4, 5), (6, 0, 5)]
    graph = _graph(8, edges)
    paths = PathExtractor(graph).apply()
    _assert_partition(paths, 8)
    for path in paths:
        for source, target in zip(path, path[1:]):
            assert graph.overlap(source, target) is not None


def test_empty_graph_has_no_paths():
    assert PathExtractor(OverlapGraph()).apply() == []


def test_canceled_extraction_raises():
    progress = ProgressListener()
    progress.cancel()
    with pytest.raises(CanceledError):
        PathExtractor(_graph(2, [(0, 1, 5)])).apply(progress)
