"""Tests for back-reference removal and safe serialization."""

from __future__ import annotations

import json
import logging

import pytest

from sheet2tree.builder import build_tree
from sheet2tree.exceptions import SerializationHazard
from sheet2tree.sanitizer import (
    CIRCULAR_MARKER,
    clone_without_back_references,
    find_back_references,
    iter_unique_nodes,
    safe_serialize,
    strip_back_references,
)
from sheet2tree.schemas import ExportPayload, RawTable, SheetTree, TreeNode


def _leaf(node_id: str, value: str) -> TreeNode:
    return TreeNode(id=node_id, value=value, column_name="Topic", column_index=1, level=1)


class TestStripBackReferences:
    """Tests for strip_back_references."""

    def test_clears_every_parent(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)
        assert find_back_references(tree)

        result = strip_back_references(tree)

        assert result is tree
        assert find_back_references(tree) == []
        assert all(node.parent is None for node in tree.walk())

    def test_accepts_a_single_node_and_lists(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)
        week = tree.children[0].children[0]

        strip_back_references(week)
        assert week.parent is None
        assert week.children[0].parent is None

        strip_back_references(tree.children)
        assert find_back_references(tree) == []

    def test_leaves_values_untouched(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)
        before = tree.to_dict()

        strip_back_references(tree)

        assert tree.to_dict() == before


class TestCloneWithoutBackReferences:
    """Tests for clone_without_back_references."""

    def test_clone_is_equal_but_independent(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)

        clone = clone_without_back_references(tree)

        assert clone == tree
        assert clone is not tree
        assert clone.children[0] is not tree.children[0]
        assert find_back_references(clone) == []
        assert find_back_references(tree)

    def test_mutating_clone_does_not_touch_original(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)
        clone = clone_without_back_references(tree.children)

        clone[0].value = "changed"
        clone[0].children.clear()

        assert tree.children[0].value == "A"
        assert len(tree.children[0].children) == 2

    def test_preserves_shape(self) -> None:
        node = _leaf("n", "x")

        assert isinstance(clone_without_back_references(node), TreeNode)
        assert isinstance(clone_without_back_references([node]), list)
        assert isinstance(clone_without_back_references((node,)), tuple)

    def test_cycles_terminate(self) -> None:
        node = _leaf("n", "x")
        node.children.append(node)

        clone = clone_without_back_references(node)

        assert clone.children[0] is clone
        assert clone is not node


class TestSafeSerialize:
    """Tests for safe_serialize."""

    def test_serializes_tree_without_parent(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)
        hazards: list[SerializationHazard] = []

        data = json.loads(safe_serialize(tree, hazards=hazards))

        assert hazards == []
        top = data["root"]["children"][0]
        assert top["value"] == "A"
        assert top["role"] == "structural"
        assert "parent_ref" not in top and "child_index" not in top
        assert top["sourceCoordinates"]["cell"] == "A2"

    def test_cycle_is_replaced_with_marker(self, caplog: pytest.LogCaptureFixture) -> None:
        node = _leaf("n", "x")
        node.children.append(node)
        hazards: list[SerializationHazard] = []

        with caplog.at_level(logging.WARNING, logger="sheet2tree.sanitizer"):
            data = json.loads(safe_serialize(node, hazards=hazards))

        assert data["children"] == [CIRCULAR_MARKER]
        assert len(hazards) == 1
        assert hazards[0].path == "$.children[0]"
        assert CIRCULAR_MARKER in caplog.text

    def test_shared_node_is_reported_once(self) -> None:
        shared = _leaf("s", "x")

        data = json.loads(safe_serialize([shared, shared]))

        assert data[0]["value"] == "x"
        assert data[1] == CIRCULAR_MARKER

    def test_self_referencing_containers(self) -> None:
        data: dict = {"name": "loop"}
        data["self"] = data
        items: list = [1]
        items.append(items)

        assert json.loads(safe_serialize(data)) == {"name": "loop", "self": CIRCULAR_MARKER}
        assert json.loads(safe_serialize(items)) == [1, CIRCULAR_MARKER]

    def test_repeated_empty_containers_are_not_hazards(self) -> None:
        empty: list = []
        hazards: list[SerializationHazard] = []

        assert json.loads(safe_serialize({"a": empty, "b": empty}, hazards=hazards)) == {"a": [], "b": []}
        assert hazards == []

    def test_models_and_scalars(self) -> None:
        payload = ExportPayload(title="t", serialized_tree="[]")

        data = json.loads(safe_serialize({"payload": payload, "n": 1.5, "flag": True, "none": None}))

        assert data["payload"]["title"] == "t"
        assert data["n"] == 1.5
        assert data["flag"] is True
        assert data["none"] is None

    def test_never_follows_parent_reference(self) -> None:
        parent = _leaf("p", "A")
        child = _leaf("c", "x")
        parent.children.append(child)
        child.set_parent(parent)

        data = json.loads(safe_serialize(child))

        assert data["value"] == "x"
        assert "A" not in json.dumps(data)


class TestIterUniqueNodes:
    """Tests for iter_unique_nodes."""

    def test_depth_first_order(self, course_table: RawTable, course_config: dict) -> None:
        tree = build_tree(course_table, course_config)

        assert [node.value for node in iter_unique_nodes(tree)] == [
            node.value for node in tree.walk()
        ]

    def test_visits_each_node_once(self) -> None:
        node = _leaf("n", "x")
        node.children.extend([node, node])

        assert list(iter_unique_nodes(SheetTree(headers=[], children=[node, node]))) == [node]
