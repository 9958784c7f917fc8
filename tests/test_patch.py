"""Tests for structural diffs and patch application."""

import pytest

from turnengine.engine.frozen import FrozenDict, freeze
from turnengine.engine.patch import apply_patch, diff
from turnengine.models.patch import PatchOp, PatchOpKind


class TestDiff:
    """Tests for diff()."""

    def test_identical_states(self):
        state = {"a": [1, 2], "b": {"c": None}}
        assert diff(state, freeze(state)) == []

    def test_replace_scalar(self):
        assert diff({"a": 1}, {"a": 2}) == [PatchOp(op=PatchOpKind.REPLACE, path=["a"], value=2)]

    def test_add_and_remove_keys(self):
        ops = diff({"a": 1, "b": 2}, {"b": 2, "c": 3})
        assert PatchOp(op=PatchOpKind.REMOVE, path=["a"]) in ops
        assert PatchOp(op=PatchOpKind.ADD, path=["c"], value=3) in ops
        assert len(ops) == 2

    def test_list_append(self):
        assert diff({"l": [1]}, {"l": [1, 2]}) == [
            PatchOp(op=PatchOpKind.ADD, path=["l", 1], value=2),
        ]

    def test_list_shrink_removes_from_the_end(self):
        assert diff([1, 2, 3], [1]) == [
            PatchOp(op=PatchOpKind.REMOVE, path=[2]),
            PatchOp(op=PatchOpKind.REMOVE, path=[1]),
        ]

    def test_type_change_is_a_replace(self):
        assert diff({"a": 1}, {"a": 1.0}) == [PatchOp(op=PatchOpKind.REPLACE, path=["a"], value=1.0)]

    def test_nested_change_has_full_path(self):
        old = {"players": {"p1": {"hand": ["A", "B"]}}}
        new = {"players": {"p1": {"hand": ["A", "C"]}}}
        assert diff(old, new) == [
            PatchOp(op=PatchOpKind.REPLACE, path=["players", "p1", "hand", 1], value="C"),
        ]

    def test_values_in_ops_are_not_frozen(self):
        ops = diff(freeze({}), freeze({"a": {"b": [1]}}))
        assert type(ops[0].value) is dict


class TestApplyPatch:
    """Tests for apply_patch()."""

    @pytest.mark.parametrize("old,new", [
        ({"a": [1, 2, 3]}, {"a": [3]}),
        ({"a": {"b": 1}}, {"a": [1]}),
        ([], [{"x": 1}, {"y": 2}]),
        ({"deck": ["A", "B"], "hand": []}, {"deck": ["B"], "hand": ["A"]}),
    ])
    def test_patch_reaches_target(self, old, new):
        result = apply_patch(freeze(old), diff(old, new))
        assert result == new

    def test_result_is_frozen_and_input_untouched(self):
        old = freeze({"a": [1]})
        result = apply_patch(old, [PatchOp(op=PatchOpKind.ADD, path=["a", 1], value=2)])
        assert isinstance(result, FrozenDict)
        assert old == {"a": [1]}

    def test_root_replace(self):
        assert apply_patch({"a": 1}, [PatchOp(op=PatchOpKind.REPLACE, path=[], value=[1])]) == [1]

    def test_missing_key_raises(self):
        with pytest.raises(ValueError, match="does not exist"):
            apply_patch({"a": 1}, [PatchOp(op=PatchOpKind.REMOVE, path=["b"])])

    def test_missing_intermediate_raises(self):
        with pytest.raises(ValueError, match="not found"):
            apply_patch({"a": 1}, [PatchOp(op=PatchOpKind.REPLACE, path=["x", "y"], value=1)])

    def test_index_out_of_range_raises(self):
        with pytest.raises(ValueError, match="out of range"):
            apply_patch([1], [PatchOp(op=PatchOpKind.REPLACE, path=[5], value=0)])

    def test_patches_compose(self):
        versions = [
            {"n": 0, "log": []},
            {"n": 1, "log": ["a"]},
            {"n": 1, "log": ["a", "b"], "done": False},
            {"n": 2, "log": ["b"], "done": True},
        ]
        state = freeze(versions[0])
        for old, new in zip(versions, versions[1:]):
            state = apply_patch(state, diff(old, new))
        assert state == versions[-1]
