"""Tests for codeinsight.analysis.aggregator."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from codeinsight.analysis.aggregator import (
    EventAggregator,
    build_profile,
    categorize_title,
    format_code_sample,
)
from codeinsight.analysis.models import CODE_RUN, CODE_SUBMIT

from conftest import NOW, make_event


class TestCategorizeTitle:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Two Sum Array", "Array"),
            ("Reverse Linked List", "Array"),
            ("Longest Common String", "String"),
            ("Maximum Depth of Tree", "Tree"),
            ("Binary Search", "Tree"),
            ("Clone Graph", "Graph"),
            ("BFS Shortest Path", "Graph"),
            ("Dynamic Stairs", "Dynamic Programming"),
            ("Sort Colors", "Sorting"),
            ("Design Hash Set", "Hash Table"),
            ("Roman to Integer", "Other"),
        ],
    )
    def test_single_keyword(self, title, expected):
        assert categorize_title(title) == expected

    def test_case_insensitive(self):
        assert categorize_title("VALID SUDOKU STRING") == "String"

    def test_priority_array_before_tree(self):
        assert categorize_title("Binary Tree Array") == "Array"

    def test_priority_string_before_graph(self):
        assert categorize_title("Graph of String Nodes") == "String"

    def test_priority_tree_before_sorting(self):
        assert categorize_title("Sorted Binary Tree") == "Tree"

    def test_substring_match(self):
        # "map" inside "Bitmap"
        assert categorize_title("Bitmap Counter") == "Hash Table"


class TestFormatCodeSample:
    def test_template(self):
        event = make_event(problem_title="Two Sum", language="python", source_code="x" * 60)
        sample = format_code_sample(event)
        assert sample == f"Problem: Two Sum\nLanguage: python\nCode:\n{'x' * 60}\n---"

    def test_truncates_long_code(self):
        event = make_event(source_code="y" * 1500)
        sample = format_code_sample(event)
        assert "y" * 1000 + "..." in sample
        assert "y" * 1001 not in sample

    def test_defaults_for_missing_title_and_language(self):
        event = make_event(problem_title=None, language=None, source_code="z" * 60)
        sample = format_code_sample(event)
        assert "Problem: Unknown Problem" in sample
        assert "Language: unknown" in sample


class TestBuildProfile:
    def test_empty_events(self):
        profile = build_profile("alice", 30, [])
        assert profile.total_problems == 0
        assert profile.total_runs == 0
        assert profile.total_submits == 0
        assert profile.languages_used == set()
        assert profile.most_used_language == "unknown"
        assert profile.problem_categories == {}
        assert profile.recent_code_samples == []
        assert not profile.has_activity

    def test_counts(self, scenario_b_events):
        profile = build_profile("alice", 30, scenario_b_events)
        assert profile.total_runs == 12
        assert profile.total_submits == 4
        assert profile.total_problems == 6
        assert profile.languages_used == {"python"}
        assert profile.most_used_language == "python"
        assert profile.problem_categories == {"Array": 16}

    def test_ignores_other_event_types(self):
        events = [make_event(CODE_RUN), make_event("PAGE_VIEW"), make_event(CODE_SUBMIT)]
        profile = build_profile("alice", 30, events)
        assert profile.total_runs == 1
        assert profile.total_submits == 1

    def test_languages_exclude_unknown_and_empty(self):
        events = [
            make_event(language="python"),
            make_event(language="unknown"),
            make_event(language=""),
            make_event(language=None),
            make_event(language="java"),
        ]
        profile = build_profile("alice", 30, events)
        assert profile.languages_used == {"python", "java"}

    def test_most_used_language(self):
        events = [
            make_event(language="java"),
            make_event(language="python"),
            make_event(language="python"),
        ]
        assert build_profile("alice", 30, events).most_used_language == "python"

    def test_null_title_counted_but_not_categorized(self):
        events = [make_event(problem_title=None), make_event(CODE_SUBMIT, problem_title="Clone Graph")]
        profile = build_profile("alice", 30, events)
        assert profile.total_runs == 1
        assert profile.total_submits == 1
        assert profile.problem_categories == {"Graph": 1}

    def test_recent_samples_newest_first_and_limited(self):
        events = [
            make_event(problem_title=f"Problem {i}", source_code=f"# {i}\n" + "x" * 60, minutes_ago=i)
            for i in range(8)
        ]
        profile = build_profile("alice", 30, list(reversed(events)))
        assert len(profile.recent_code_samples) == 5
        assert profile.recent_code_samples[0].startswith("Problem: Problem 0\n")
        assert profile.recent_code_samples[4].startswith("Problem: Problem 4\n")

    def test_short_code_not_sampled(self):
        events = [make_event(source_code="x" * 50), make_event(source_code=None)]
        assert build_profile("alice", 30, events).recent_code_samples == []

    def test_does_not_mutate_events(self, scenario_b_events):
        before = list(scenario_b_events)
        build_profile("alice", 30, scenario_b_events)
        assert scenario_b_events == before


class TestEventAggregator:
    def test_queries_window(self, scenario_b_events):
        store = MagicMock()
        store.find_coding_events.return_value = scenario_b_events
        aggregator = EventAggregator(store, clock=lambda: NOW)

        profile = aggregator.aggregate("alice", 7)

        store.find_coding_events.assert_called_once_with("alice", NOW - timedelta(days=7))
        assert profile.user_id == "alice"
        assert profile.period_days == 7
        assert profile.total_runs == 12

    def test_reads_from_repository(self, repo, scenario_b_events):
        repo.save_events(scenario_b_events)
        repo.save_event(make_event(user_id="someone-else"))
        aggregator = EventAggregator(repo, clock=lambda: NOW + timedelta(hours=1))

        profile = aggregator.aggregate("alice", 1)
        assert profile.total_runs == 12
        assert profile.total_submits == 4
