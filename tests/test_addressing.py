import itertools
from typing import List

import pytest

from taxassemble.addressing import (
    ROOT_ADDRESS,
    address_depth,
    child_address,
    get_common_prefix,
    is_ancestor_address,
    lowest_common_ancestor_address,
    remove_nested_addresses,
)
from taxassemble.classification import ClassificationTree

# --- child_address / address_depth ---


def test_child_address_of_root_is_single_token():
    assert child_address(ROOT_ADDRESS, 0) == "1"
    assert child_address(ROOT_ADDRESS, 11) == "12"


def test_child_address_appends_one_based_token():
    assert child_address("1.2", 2) == "1.2.3"


def test_child_address_rejects_negative_index():
    with pytest.raises(ValueError):
        child_address("1", -1)


@pytest.mark.parametrize(
    "address, depth", [("", 0), ("1", 1), ("1.2", 2), ("3.10.7.1", 4)]
)
def test_address_depth(address: str, depth: int):
    assert address_depth(address) == depth


# --- is_ancestor_address ---


def test_root_is_ancestor_of_everything():
    assert is_ancestor_address("", "1.2.3")
    assert is_ancestor_address("", "")


def test_node_is_its_own_ancestor():
    assert is_ancestor_address("1.2", "1.2")


def test_character_prefix_is_not_ancestor():
    assert not is_ancestor_address("1.1", "1.12")
    assert is_ancestor_address("1.1", "1.1.2")


# --- get_common_prefix ---


def test_common_prefix_trims_to_whole_tokens():
    assert get_common_prefix(["1.12", "1.13"]) == "1"
    assert get_common_prefix(["1.12", "1.1"]) == "1"
    assert get_common_prefix(["12", "13"]) == ROOT_ADDRESS


def test_common_prefix_keeps_shorter_address_on_token_boundary():
    assert get_common_prefix(["1.2", "1.2.5"]) == "1.2"


def test_common_prefix_respects_count():
    addresses = ["1.2.3", "1.2.4", "2.1", "garbage"]
    assert get_common_prefix(addresses, 2) == "1.2"
    assert get_common_prefix(addresses, 1) == "1.2.3"
    assert get_common_prefix(addresses, 0) == ROOT_ADDRESS


# --- remove_nested_addresses ---


def test_remove_nested_drops_ancestors_and_duplicates():
    addresses = sorted(["1.2.3", "1.2.4", "1.2.3.5", "1.2.4", "1"])
    count = remove_nested_addresses(addresses)
    assert addresses[:count] == ["1.2.3.5", "1.2.4"]


def test_remove_nested_keeps_siblings_with_shared_characters():
    addresses = sorted(["1.1", "1.12"])
    count = remove_nested_addresses(addresses)
    assert addresses[:count] == ["1.1", "1.12"]


def test_remove_nested_only_touches_used_entries():
    addresses = ["1", "1.1", "2", "unused"]
    count = remove_nested_addresses(addresses, 3)
    assert count == 2
    assert addresses[:count] == ["1.1", "2"]
    assert addresses[3] == "unused"


def test_lca_scenario_from_three_addresses():
    assert lowest_common_ancestor_address(["1.2.3", "1.2.4", "1.2.3.5"]) == "1.2"


# --- agreement with the tree ---


def _graph_lca(tree: ClassificationTree, ids: List[int]) -> int:
    common = set(tree.get_ancestors(ids[0]))
    for class_id in ids[1:]:
        common &= set(tree.get_ancestors(class_id))
    # deepest common ancestor: the one with the longest ancestor chain
    return max(common, key=lambda node: len(tree.get_ancestors(node)))


def test_address_lca_matches_tree_lca_for_unrelated_nodes(tree: ClassificationTree):
    node_ids = [1, 2, 3, 10, 20, 100, 101, 200, 1000, 1001]
    for size in (1, 2, 3):
        for ids in itertools.combinations(node_ids, size):
            if any(a != b and tree.is_ancestor(a, b) for a in ids for b in ids):
                continue
            addresses = [tree.get_address(i) for i in ids]
            lca_address = lowest_common_ancestor_address(addresses)
            assert tree.get_address_to_id(lca_address) == _graph_lca(tree, list(ids)), ids


def test_more_specific_hit_wins_over_its_ancestor(tree: ClassificationTree):
    addresses = [tree.get_address(2), tree.get_address(10)]
    assert tree.get_address_to_id(lowest_common_ancestor_address(addresses)) == 10
