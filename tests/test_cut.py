"""Tests for the clean cut point search."""

from __future__ import annotations

from contextkeeper.compaction.cut import (
    collect_tool_call_ids,
    find_clean_cut,
    find_orphaned_tool_results,
    has_orphaned_tool_results,
)
from tests.conftest import make_assistant, make_dialogue, make_tool_result, make_user


class TestOrphanDetection:
    def test_collects_tool_call_ids(self):
        messages = [make_assistant("x", tool_calls=["a", "b"]), make_assistant("y")]
        assert collect_tool_call_ids(messages) == {"a", "b"}

    def test_result_with_call_is_not_orphaned(self):
        messages = [make_assistant("x", tool_calls=["a"]), make_tool_result("a")]
        assert find_orphaned_tool_results(messages) == []
        assert has_orphaned_tool_results(messages) is False

    def test_result_without_call_is_orphaned(self):
        messages = [make_user("hi"), make_tool_result("missing")]
        assert find_orphaned_tool_results(messages) == ["missing"]

    def test_plain_dialogue_has_no_orphans(self):
        assert has_orphaned_tool_results(make_dialogue(8)) is False


class TestFindCleanCut:
    def test_initial_cut_already_clean(self):
        search = find_clean_cut(make_dialogue(10), keep_count=4)
        assert search.cut_index == 6
        assert search.iterations == 0
        assert search.clean is True

    def test_moves_back_past_tool_call(self):
        messages = make_dialogue(4)
        messages.append(make_assistant("call", tool_calls=["t1"]))  # 4
        messages.append(make_tool_result("t1"))  # 5
        messages.append(make_user("after"))  # 6
        search = find_clean_cut(messages, keep_count=2)
        assert search.cut_index == 4
        assert search.iterations == 1
        assert search.clean is True

    def test_keep_count_larger_than_history(self):
        search = find_clean_cut(make_dialogue(3), keep_count=10)
        assert search.cut_index == 0
        assert search.iterations == 0
        assert search.clean is True

    def test_gives_up_after_max_iterations(self):
        messages = [make_assistant("call", tool_calls=["far"])]
        messages += make_dialogue(20)
        messages.append(make_tool_result("far"))
        search = find_clean_cut(messages, keep_count=1, max_iterations=5)
        assert search.iterations == 5
        assert search.cut_index == len(messages) - 1 - 5
        assert search.clean is False

    def test_never_goes_below_zero(self):
        messages = [make_user("a"), make_tool_result("unknown"), make_user("b")]
        search = find_clean_cut(messages, keep_count=2)
        assert search.cut_index == 0
        assert search.clean is False

    def test_default_limit_is_fifty(self):
        messages = [make_assistant("call", tool_calls=["far"])]
        messages += make_dialogue(80)
        messages.append(make_tool_result("far"))
        search = find_clean_cut(messages, keep_count=1)
        assert search.iterations == 50
        assert search.clean is False
