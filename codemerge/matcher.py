"""
File discovery: expand filter globs under a root, drop ignored paths.
"""

import os
import logging
from typing import IO, Iterable, List, Optional, Sequence

from wcmatch import glob as wcglob

from .ignore_rules import IgnoreMatcher, resolve, to_posix

DEFAULT_FILTERS = ["**"]

# "**" spans directories, "{a,b}" alternates, "*" also matches dot files
GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.BRACE | wcglob.DOTGLOB | wcglob.FORCEUNIX


class DiscoveryError(Exception):
    """The root path cannot be used for discovery."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


def _check_root(path: str) -> None:
    if not os.path.exists(path):
        raise DiscoveryError(path, "path does not exist")
    if not os.path.isdir(path):
        raise DiscoveryError(path, "path is not a directory")
    try:
        os.listdir(path)
    except OSError as e:
        raise DiscoveryError(path, str(e)) from e


def _to_output(path: str, paths: List[str], absolute: bool) -> List[str]:
    if not absolute:
        return paths
    root = os.path.abspath(path)
    return [os.path.join(root, p.replace("/", os.sep)) for p in paths]


def _normalize_filter(pattern: str) -> str:
    pattern = pattern.replace(os.sep, "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern or "**"


def matches_filters(relative_path: str, filters: Sequence[str]) -> bool:
    """Return True if the root-relative posix path matches any filter glob."""
    return wcglob.globmatch(relative_path, list(filters), flags=GLOB_FLAGS)


def walk_files(path: str, ignore: IgnoreMatcher, filters: Sequence[str]) -> List[str]:
    """Walk the tree in sorted order, pruning ignored directories."""
    patterns = [_normalize_filter(f) for f in (filters or DEFAULT_FILTERS)]
    results = []

    def _on_error(error: OSError):
        logging.warning(f"Skipping unreadable directory {error.filename}: {error}")

    for dirpath, dirnames, filenames in os.walk(path, onerror=_on_error):
        rel_dir = to_posix(os.path.relpath(dirpath, path))
        if rel_dir == ".":
            rel_dir = ""

        kept = []
        for d in sorted(dirnames):
            rel = f"{rel_dir}/{d}" if rel_dir else d
            if ignore.matches(rel, is_dir=True):
                logging.debug(f"Ignored directory: {rel}")
                continue
            kept.append(d)
        dirnames[:] = kept

        for name in sorted(filenames):
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if not matches_filters(rel, patterns):
                continue
            if ignore.matches(rel):
                logging.debug(f"Ignored file: {rel}")
                continue
            results.append(rel)

    return results


def match(
    path: str,
    ignores: Iterable[str] = (),
    filters: Optional[Sequence[str]] = None,
    absolute: bool = False,
    ignore_case: bool = True,
) -> List[str]:
    """
    Return the files under path that match any filter glob and are not ignored.

    Paths are relative to path with '/' separators, or absolute when
    requested. Raises DiscoveryError if path cannot be read.
    """
    _check_root(path)
    ignore = resolve(path, ignores, ignore_case=ignore_case)
    files = walk_files(path, ignore, filters or DEFAULT_FILTERS)
    logging.info(f"Matched {len(files)} files under {path}")
    return _to_output(path, files, absolute)


def stdin_available(stream: Optional[IO]) -> bool:
    if stream is None:
        return False
    try:
        return not stream.isatty()
    except (AttributeError, ValueError):
        return False


def read_stdin_paths(stream: Optional[IO]) -> List[str]:
    """Read a newline-delimited path list; blank lines are dropped."""
    if not stdin_available(stream):
        return []
    return [line.strip() for line in stream.read().splitlines() if line.strip()]


def match_input(
    path: str,
    ignores: Iterable[str] = (),
    filters: Optional[Sequence[str]] = None,
    absolute: bool = False,
    use_input: bool = False,
    stream: Optional[IO] = None,
    ignore_case: bool = True,
) -> List[str]:
    """
    Like match(), but take the file list from stream when use_input is set.

    Piped paths skip glob expansion and ignore rules. Relative piped paths
    are treated as relative to path. An empty stream falls back to match().
    """
    piped = read_stdin_paths(stream) if use_input else []
    if not piped:
        return match(path, ignores, filters, absolute, ignore_case)

    logging.info(f"Read {len(piped)} paths from input stream")
    if not absolute:
        return piped
    root = os.path.abspath(path)
    return [p if os.path.isabs(p) else os.path.join(root, p) for p in piped]
