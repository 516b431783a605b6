import os

import pytest

from codemerge.filters import BudgetOptions, static_filters
from codemerge.loader import load_all
from codemerge.matcher import match
from codemerge.tokens import build_leaderboard, total_tokens
from codemerge.tree import build_tree
from conftest import create_file_with_content, word_count


def run_pipeline(root, options=None, **match_kwargs):
    """Discovery, loading and filtering, with the word counter as tokenizer."""
    files = match(root, **match_kwargs)
    records = load_all(files, base=root, counter=word_count)
    return static_filters(options or BudgetOptions()).apply(records)


def _child(node, name):
    return next(c for c in node.children if c.path == name)


@pytest.mark.integration
class TestScenarios:
    """End-to-end runs over small fixture projects"""

    def test_full_tree(self, scenario_project):
        root = build_tree(run_pipeline(scenario_project))
        assert root.tokens == 16
        src = _child(root, "src")
        assert src.tokens == 15
        assert [c.path for c in src.children] == ["a.txt", "b.txt"]
        assert all(c.is_leaf for c in src.children)
        assert _child(root, "readme.md").tokens == 1

    def test_nested_ignore_file(self, nested_ignore_project):
        root = build_tree(run_pipeline(nested_ignore_project))
        assert root.tokens == 11
        assert [c.path for c in _child(root, "src").children] == ["a.txt"]

    def test_high_budget(self, scenario_project):
        options = BudgetOptions(max_budget=8, limit_by_high_budget=True)
        survivors = run_pipeline(scenario_project, options)
        assert {r.path for r in survivors} == {"src/b.txt", "readme.md"}

    @pytest.mark.parametrize(
        "options",
        [
            BudgetOptions(),
            BudgetOptions(max_budget=10**9, limit_by_high_budget=True),
            BudgetOptions(min_budget=0, limit_by_low_budget=True),
        ],
    )
    def test_unreadable_files_never_survive(self, scenario_project, options):
        create_file_with_content(scenario_project, "src/logo.png", b"\x89PNG\xff\xfe", encoding="binary")
        survivors = run_pipeline(scenario_project, options)
        assert "src/logo.png" not in [r.path for r in survivors]
        assert len(survivors) == 3

    def test_empty_project(self, temp_project_dir):
        assert run_pipeline(temp_project_dir) == []
        root = build_tree([])
        assert root.tokens == 0


@pytest.mark.integration
class TestEndToEnd:
    def test_realistic_project(self, sample_python_project):
        records = run_pipeline(sample_python_project)
        assert [r.path for r in records] == [
            "README.md",
            "requirements.txt",
            "setup.py",
            "src/main.py",
            "src/utils.py",
            "tests/test_main.py",
        ]
        root = build_tree(records)
        assert root.tokens == total_tokens(records)
        board = build_leaderboard(records, 3)
        assert len(board) == 3
        assert board["TOKEN_COUNT"].is_monotonic_decreasing

    def test_filters_and_ignores_together(self, sample_python_project):
        records = run_pipeline(
            sample_python_project, filters=["**/*.py"], ignores=["tests/"]
        )
        assert [r.path for r in records] == ["setup.py", "src/main.py", "src/utils.py"]

    def test_absolute_paths(self, scenario_project):
        records = run_pipeline(scenario_project, absolute=True)
        assert all(os.path.isabs(r.path) for r in records)
        assert build_tree(records).tokens == 16
