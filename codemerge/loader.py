"""
Boundary services: read matched files and count their tokens.
"""

import os
import sys
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import nbconvert
import tiktoken
from tqdm import tqdm

ENCODING_NAME = "o200k_base"
DEFAULT_WORKERS = 4

TokenCounter = Callable[[str], int]


@dataclass(frozen=True)
class FileRecord:
    """A loaded file. Either content or error is populated, never both."""

    path: str
    content: str = ""
    tokens: int = 0
    error: Optional[str] = None


def count_tokens(text: str, encoding_name: str = ENCODING_NAME) -> int:
    """Count tokens in text using tiktoken."""
    encoding = tiktoken.get_encoding(encoding_name)
    return len(encoding.encode(text, disallowed_special=()))


def convert_notebook_to_markdown(notebook_path: str) -> str:
    """Render a Jupyter notebook as markdown, in memory."""
    logging.debug(f"Converting notebook to markdown: {notebook_path}")
    markdown_exporter = nbconvert.MarkdownExporter()
    body, _ = markdown_exporter.from_filename(notebook_path)
    return body


def _read_text(file_path: str) -> str:
    with open(file_path, "rb") as f:
        raw = f.read()
    return raw.decode("utf-8")


def read_file(
    file_path: str,
    display_path: Optional[str] = None,
    counter: Optional[TokenCounter] = None,
    convert_notebooks: bool = True,
) -> FileRecord:
    """
    Load one file into a FileRecord.

    Read failures are recorded on the record instead of raised, so one bad
    file never aborts a run. display_path is what the record reports as its
    path (defaults to file_path).
    """
    shown = display_path if display_path is not None else file_path

    if not os.path.isfile(file_path):
        return FileRecord(path=shown, error="Path is not a valid file")

    if convert_notebooks and file_path.endswith(".ipynb"):
        try:
            content = convert_notebook_to_markdown(file_path)
        except Exception as e:
            logging.error(f"Error converting notebook {file_path}: {e}")
            return FileRecord(path=shown, error=f"Notebook conversion failed: {e}")
    else:
        try:
            content = _read_text(file_path)
        except UnicodeDecodeError:
            logging.debug(f"Skipping non UTF-8 file: {file_path}")
            return FileRecord(path=shown, error="Invalid UTF-8 content")
        except PermissionError:
            logging.error(f"Permission denied reading {file_path}")
            return FileRecord(path=shown, error="Permission denied")
        except OSError as e:
            logging.error(f"Cannot read file {file_path}: {e}")
            return FileRecord(path=shown, error=str(e))

    counter = counter or count_tokens
    return FileRecord(path=shown, content=content, tokens=counter(content))


def load_all(
    paths: Sequence[str],
    base: Optional[str] = None,
    workers: int = DEFAULT_WORKERS,
    show_progress: bool = False,
    counter: Optional[TokenCounter] = None,
    convert_notebooks: bool = True,
) -> List[FileRecord]:
    """
    Read every path with a fixed-size thread pool.

    Returns one record per input path, in input order. Relative paths are
    resolved against base when given; records keep the path as passed in.
    """
    if not paths:
        return []

    def _load(path: str) -> FileRecord:
        full_path = path
        if base is not None and not os.path.isabs(path):
            full_path = os.path.join(base, path.replace("/", os.sep))
        return read_file(full_path, path, counter, convert_notebooks)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        records = list(
            tqdm(
                executor.map(_load, paths),
                total=len(paths),
                desc="Reading files",
                unit="file",
                disable=not show_progress,
                file=sys.stderr,
            )
        )

    failed = sum(1 for r in records if r.error)
    if failed:
        logging.info(f"{failed} of {len(records)} files could not be read")
    return records
