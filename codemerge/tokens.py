"""
Token leaderboard: ordering, truncation and totals.
"""

import json
from typing import List, Optional, Sequence

import pandas as pd

from .loader import FileRecord

LEADERBOARD_COLUMNS = ["FILE_PATH", "TOKEN_COUNT", "CUMULATIVE_TOKENS"]


def sort_records(records: Sequence[FileRecord]) -> List[FileRecord]:
    """Descending by token count; ties keep their original order."""
    return sorted(records, key=lambda r: r.tokens, reverse=True)


def total_tokens(records: Sequence[FileRecord]) -> int:
    return sum(r.tokens for r in records)


def top(records: Sequence[FileRecord], n: Optional[int] = None) -> List[FileRecord]:
    """First n records of the sorted sequence, or all of them when n is None."""
    ordered = sort_records(records)
    if n is None:
        return ordered
    return ordered[: max(0, n)]


def build_leaderboard(records: Sequence[FileRecord], n: Optional[int] = None) -> pd.DataFrame:
    """Sorted, truncated table with a running token total."""
    rows = [(r.path, r.tokens) for r in top(records, n)]
    df = pd.DataFrame(rows, columns=LEADERBOARD_COLUMNS[:2])
    df["TOKEN_COUNT"] = df["TOKEN_COUNT"].astype("int64")
    df["CUMULATIVE_TOKENS"] = df["TOKEN_COUNT"].cumsum()
    return df


def save_leaderboard(df: pd.DataFrame, output_file: str) -> None:
    df.to_csv(output_file, index=False, encoding="utf-8")


def format_token_board(board: pd.DataFrame, total: int) -> str:
    """Plain-text board followed by the total of the untruncated set."""
    paths = board["FILE_PATH"].tolist()
    counts = board["TOKEN_COUNT"].tolist()
    width = max((len(p) for p in paths), default=0)
    rule = "─" * (width + 20)

    lines = ["", "Token Statistics:", rule]
    for path, count in zip(paths, counts):
        lines.append(f"{path.ljust(width)} │ {count:>8} tokens")
    lines.append(rule)
    lines.append(f"Total tokens: {total}")
    return "\n".join(lines) + "\n"


def format_token_json(board: pd.DataFrame, total: int) -> str:
    files = [
        {"path": path, "tokens": int(count)}
        for path, count in zip(board["FILE_PATH"], board["TOKEN_COUNT"])
    ]
    return json.dumps({"files": files, "total_tokens": total}, indent=2) + "\n"
