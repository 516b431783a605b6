import os
import time

import pytest

from codemerge.loader import load_all
from codemerge.matcher import match
from codemerge.tree import build_tree
from conftest import create_file_with_content, word_count, words


@pytest.mark.performance
class TestPerformanceEdgeCases:
    """Edge cases that could cause hangs or excessive memory usage"""

    @pytest.mark.slow
    def test_many_files_complete_quickly(self, temp_project_dir):
        for i in range(300):
            create_file_with_content(temp_project_dir, f"pkg{i % 10}/mod_{i}.py", words(i % 20))

        start_time = time.time()
        files = match(temp_project_dir)
        records = load_all(files, base=temp_project_dir, counter=word_count, workers=8)
        root = build_tree(records)
        processing_time = time.time() - start_time

        assert len(records) == 300
        assert root.tokens == sum(i % 20 for i in range(300))
        assert processing_time < 30.0, f"Processing took {processing_time:.2f}s, expected < 30s"

    def test_extremely_long_filename_handling(self, temp_project_dir):
        long_name = "a" * 100 + ".py"
        create_file_with_content(temp_project_dir, long_name, "print('test')")
        assert match(temp_project_dir) == [long_name]

    def test_deep_directory_nesting(self, temp_project_dir):
        nested = "/".join(f"level_{i}" for i in range(10))
        create_file_with_content(temp_project_dir, f"{nested}/deep.py", words(3))
        files = match(temp_project_dir)
        assert files == [f"{nested}/deep.py"]
        root = build_tree(load_all(files, base=temp_project_dir, counter=word_count))
        assert root.tokens == 3

    def test_large_single_file(self, temp_project_dir):
        create_file_with_content(temp_project_dir, "big.txt", words(200_000))
        records = load_all(["big.txt"], base=temp_project_dir, counter=word_count)
        assert records[0].tokens == 200_000

    @pytest.mark.skip_on_windows
    def test_symlink_loop_does_not_hang(self, temp_project_dir):
        create_file_with_content(temp_project_dir, "src/a.py", "x = 1\n")
        os.symlink(temp_project_dir, os.path.join(temp_project_dir, "src", "loop"))
        assert match(temp_project_dir) == ["src/a.py"]
