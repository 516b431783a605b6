import pytest
import tempfile
import os
import sys
import logging
from typing import Dict
from unittest.mock import patch

from codemerge.loader import FileRecord

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def word_count(text: str) -> int:
    """Stand-in tokenizer: one token per whitespace-separated word."""
    return len(text.split())


def words(n: int) -> str:
    return " ".join(f"w{i}" for i in range(n))


def create_file_with_content(
    directory: str, filename: str, content, encoding: str = "utf-8"
):
    """Helper to create files with specific content and encoding"""
    filepath = os.path.join(directory, filename.replace("/", os.sep))
    os.makedirs(os.path.dirname(filepath), exist_ok=True)

    if encoding == "binary":
        with open(filepath, "wb") as f:
            f.write(content)
    else:
        with open(filepath, "w", encoding=encoding) as f:
            f.write(content)
    return filepath


def build_project(root: str, structure: Dict[str, object]) -> str:
    for path, content in structure.items():
        if isinstance(content, bytes):
            create_file_with_content(root, path, content, encoding="binary")
        else:
            create_file_with_content(root, path, content)
    return root


def record(path: str, tokens: int, content: str = "x", error: str = None) -> FileRecord:
    if error:
        return FileRecord(path=path, error=error)
    return FileRecord(path=path, content=content, tokens=tokens)


@pytest.fixture
def temp_project_dir():
    """Create a temporary directory for individual test projects"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def scenario_project():
    """src/a.txt (10 words), src/b.txt (5 words), readme.md (1 word)"""
    with tempfile.TemporaryDirectory() as tmpdir:
        build_project(
            tmpdir,
            {
                "src/a.txt": words(10),
                "src/b.txt": words(5),
                "readme.md": words(1),
            },
        )
        yield tmpdir


@pytest.fixture
def nested_ignore_project(scenario_project):
    """The scenario project plus src/.gitignore excluding b.txt"""
    create_file_with_content(scenario_project, "src/.gitignore", "b.txt\n")
    yield scenario_project


@pytest.fixture
def sample_python_project():
    """A small Python project with the usual clutter next to the sources"""
    with tempfile.TemporaryDirectory() as tmpdir:
        build_project(
            tmpdir,
            {
                "setup.py": "from setuptools import setup\nsetup(name='demo')\n",
                "requirements.txt": "requests==2.25.1\npytest==6.2.4\n",
                "src/main.py": "import utils\n\nprint(utils.helper())\n",
                "src/utils.py": "def helper():\n    return True\n",
                "src/__pycache__/utils.cpython-311.pyc": b"\x00\x01\x02",
                "tests/test_main.py": "def test_main():\n    assert True\n",
                "node_modules/lib/index.js": "module.exports = {}\n",
                "poetry.lock": "[[package]]\n",
                ".env": "SECRET=1\n",
                ".git/HEAD": "ref: refs/heads/main\n",
                "logs/debug.log": "started\n",
                ".gitignore": "logs/\n*.tmp\n",
                "notes.tmp": "scratch\n",
                "README.md": "# Demo\n\nA demo project.\n",
            },
        )
        yield tmpdir


@pytest.fixture
def fake_tokenizer():
    """Patch the loader's tokenizer with the word counter."""
    with patch("codemerge.loader.count_tokens", side_effect=word_count) as mocked:
        yield mocked


def pytest_configure(config):
    config.addinivalue_line("markers", "critical: marks tests as critical (must pass)")
    config.addinivalue_line(
        "markers", "important: marks tests as important (should pass)"
    )
    config.addinivalue_line(
        "markers", "performance: marks tests as performance-related"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "slow: marks tests as slow running")
    config.addinivalue_line("markers", "skip_on_windows: skip test on Windows")
    config.addinivalue_line("markers", "tokenizer: needs the tiktoken encoding files")


def pytest_runtest_setup(item):
    """Skip certain tests on Windows"""
    if "skip_on_windows" in [marker.name for marker in item.iter_markers()]:
        if sys.platform.startswith("win"):
            pytest.skip("Skipped on Windows")
