"""
Cascading ignore rules for file discovery.

Rules come from three places and are evaluated in the order they were added:
1. A fixed built-in exclusion set (VCS metadata, dependency/build output,
   OS artifacts, lock files)
2. Every .gitignore found under the root, scoped to its own directory
3. Caller-supplied patterns, followed by the VCS directories again so they
   can never be re-included

The last rule that matches a path decides whether it is ignored. A path
inside an ignored directory stays ignored, as in git.
"""

import os
import re
import logging
import posixpath
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Pattern, Tuple, Union

IGNORE_FILE_NAME = ".gitignore"

BUILTIN_IGNORES = [
    # Version control
    ".git",
    ".svn/",
    ".hg/",
    ".gitignore",
    ".gitattributes",
    # Dependencies and build output
    "node_modules/",
    "target/",
    "dist/",
    "build/",
    ".next/",
    ".vercel/",
    ".yarn/",
    ".jest/",
    ".cache/",
    "coverage/",
    "__pycache__/",
    "*.pyc",
    "*.o",
    "*.so",
    "*.dll",
    "*.dylib",
    "*.exe",
    "*.rlib",
    "*.rmeta",
    ".venv/",
    "venv/",
    ".pytest_cache/",
    # IDE and editor
    ".idea/",
    ".vscode/",
    ".vs/",
    "*.iml",
    "*.swp",
    "*.swo",
    "*.swn",
    # OS artifacts
    ".DS_Store",
    ".DS_Store?",
    ".Spotlight-V100",
    ".Trashes",
    "Thumbs.db",
    "desktop.ini",
    # Lock files
    "*.lock",
    "package-lock.json",
    "yarn.lock",
    "bun.lockb",
    "Cargo.lock",
    ".pnpm-lock.yaml",
    ".yarn-lock.yaml",
    "go.sum",
    # Local environment
    ".env",
    ".env.local",
    ".env.*.local",
]

VCS_IGNORES = [".git/", "**/.git/"]


def to_posix(path: str) -> str:
    """Normalize a relative path to forward slashes without leading './' or '/'."""
    path = path.replace(os.sep, "/").replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.strip("/")


def glob_to_regex(pattern: str) -> str:
    """
    Translate a gitignore-style glob into a regular expression body.

    '*' and '?' never cross a '/', '**' spans any number of segments when it
    stands alone between slashes, '[...]' is a character class and a
    backslash escapes the next character.
    """
    out = []
    i = 0
    n = len(pattern)

    while i < n:
        c = pattern[i]

        if c == "*":
            if pattern[i : i + 2] == "**":
                j = i + 2
                at_start = i == 0 or pattern[i - 1] == "/"
                at_end = j == n or pattern[j] == "/"
                if at_start and at_end:
                    if j == n:
                        out.append(".*")
                        i = j
                    else:
                        out.append("(?:.*/)?")
                        i = j + 1
                    continue
            while i < n and pattern[i] == "*":
                i += 1
            out.append("[^/]*")
            continue

        if c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : j]
                if body[0] in "!^":
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = j + 1
                continue
        elif c == "\\" and i + 1 < n:
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        else:
            out.append(re.escape(c))
        i += 1

    return "".join(out)


@dataclass(frozen=True)
class IgnoreRule:
    """One ignore-file line, tagged with the directory it was declared in."""

    pattern: str
    regex: Pattern
    scope: str = ""
    negate: bool = False
    dir_only: bool = False
    ignore_case: bool = True

    def matches(self, path: str, is_dir: bool = False) -> bool:
        if self.dir_only and not is_dir:
            return False

        if self.scope:
            prefix = self.scope + "/"
            head = path[: len(prefix)]
            if self.ignore_case:
                in_scope = head.lower() == prefix.lower()
            else:
                in_scope = head == prefix
            if not in_scope:
                return False
            path = path[len(prefix) :]

        return self.regex.match(path) is not None


def parse_rule(line: str, scope: str = "", ignore_case: bool = True) -> Optional[IgnoreRule]:
    """Parse a single ignore-file line. Blank lines and comments yield None."""
    text = line.rstrip("\r\n")
    if not text.strip() or text.startswith("#"):
        return None

    if not text.endswith("\\ "):
        text = text.rstrip()

    negate = False
    if text.startswith("!"):
        negate = True
        text = text[1:]
    elif text.startswith("\\!") or text.startswith("\\#"):
        text = text[1:]

    dir_only = text.endswith("/")
    text = text.rstrip("/")
    if not text:
        return None

    anchored = "/" in text
    text = text.lstrip("/")
    if not text:
        return None

    body = glob_to_regex(text)
    if not anchored:
        body = "(?:.*/)?" + body
    flags = re.IGNORECASE if ignore_case else 0

    return IgnoreRule(
        pattern=line.strip(),
        regex=re.compile("^" + body + "$", flags),
        scope=to_posix(scope),
        negate=negate,
        dir_only=dir_only,
        ignore_case=ignore_case,
    )


class IgnoreMatcher:
    """Ordered rule list with last-match-wins evaluation."""

    def __init__(self, ignore_case: bool = True):
        self.ignore_case = ignore_case
        self.rules: List[IgnoreRule] = []
        self._dir_cache: Dict[str, bool] = {}

    def add(self, patterns: Union[str, Iterable[str]], scope: str = "") -> "IgnoreMatcher":
        """Append patterns (a list or raw ignore-file text) declared relative to scope."""
        if isinstance(patterns, str):
            patterns = patterns.splitlines()

        for line in patterns:
            rule = parse_rule(line, scope=scope, ignore_case=self.ignore_case)
            if rule is not None:
                self.rules.append(rule)

        self._dir_cache.clear()
        return self

    def _decide(self, path: str, is_dir: bool) -> bool:
        ignored = False
        for rule in self.rules:
            if rule.matches(path, is_dir):
                ignored = not rule.negate
        return ignored

    def _dir_ignored(self, path: str) -> bool:
        cached = self._dir_cache.get(path)
        if cached is None:
            cached = self._decide(path, True)
            self._dir_cache[path] = cached
        return cached

    def matches(self, relative_path: str, is_dir: bool = False) -> bool:
        """Return True if the path (relative to the root) is ignored."""
        path = to_posix(relative_path)
        if not path:
            return False

        parts = path.split("/")
        for i in range(1, len(parts)):
            if self._dir_ignored("/".join(parts[:i])):
                return True

        if is_dir:
            return self._dir_ignored(path)
        return self._decide(path, False)


def builtin_matcher(ignore_case: bool = True) -> IgnoreMatcher:
    return IgnoreMatcher(ignore_case=ignore_case).add(BUILTIN_IGNORES)


def find_ignore_files(
    root_path: str,
    file_name: str = IGNORE_FILE_NAME,
    skip: Optional[IgnoreMatcher] = None,
) -> List[str]:
    """
    Locate every ignore file under root_path, as sorted root-relative paths.

    Directories excluded by skip (the built-in rules by default) are not
    entered; their ignore files could never apply.
    """
    skip = skip or builtin_matcher()
    found = []

    def _on_error(error: OSError):
        logging.warning(f"Cannot scan {error.filename} for ignore files: {error}")

    for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error):
        rel_dir = to_posix(os.path.relpath(dirpath, root_path))
        if rel_dir == ".":
            rel_dir = ""
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not skip.matches(f"{rel_dir}/{d}" if rel_dir else d, is_dir=True)
        )
        if file_name in filenames:
            rel = os.path.relpath(os.path.join(dirpath, file_name), root_path)
            found.append(to_posix(rel))
            logging.debug(f"Found ignore file: {rel}")

    return found


def read_ignore_files(root_path: str, ignore_files: List[str]) -> List[Tuple[str, str]]:
    """Read ignore files into (scope, content) pairs; unreadable files are skipped."""
    loaded = []
    for rel in ignore_files:
        try:
            with open(os.path.join(root_path, rel), "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logging.warning(f"Error reading ignore file {rel}: {e}")
            continue
        loaded.append((posixpath.dirname(rel), content))
    return loaded


def resolve(
    root_path: str,
    caller_ignores: Iterable[str] = (),
    ignore_case: bool = True,
    file_name: str = IGNORE_FILE_NAME,
) -> IgnoreMatcher:
    """Build the merged matcher for a discovery run rooted at root_path."""
    matcher = builtin_matcher(ignore_case)
    ignore_files = find_ignore_files(root_path, file_name, builtin_matcher(ignore_case))

    for scope, content in read_ignore_files(root_path, ignore_files):
        matcher.add(content, scope=scope)

    matcher.add(list(caller_ignores))
    matcher.add(VCS_IGNORES)

    logging.debug(f"Resolved {len(matcher.rules)} ignore rules for {root_path}")
    return matcher
