"""
Output formatters for the merge command.
"""

import json
from typing import IO, Sequence
from xml.sax.saxutils import quoteattr

from .loader import FileRecord

FORMATS = ["text", "json", "xml"]


class FormatterNotFoundError(ValueError):
    def __init__(self, name: str):
        super().__init__(f"Formatter not found: {name}")
        self.name = name


def safe_write_to_output(output_file: IO, content: str):
    """Write content, falling back to ASCII replacement on encoding errors."""
    try:
        output_file.write(content)
    except UnicodeEncodeError:
        output_file.write(content.encode("ascii", "replace").decode("ascii"))


class TextFormatter:
    def format(self, output_file: IO, records: Sequence[FileRecord]) -> None:
        safe_write_to_output(output_file, "=== Result ===")
        safe_write_to_output(output_file, "\n")
        for record in records:
            if record.content:
                safe_write_to_output(output_file, f"File: {record.path}\n")
                safe_write_to_output(output_file, record.content)


class JsonFormatter:
    def format(self, output_file: IO, records: Sequence[FileRecord]) -> None:
        payload = [
            {"path": r.path, "tokens": r.tokens, "content": r.content} for r in records
        ]
        safe_write_to_output(output_file, json.dumps(payload, indent=2, ensure_ascii=False))
        safe_write_to_output(output_file, "\n")


class XmlFormatter:
    """Structured <codebase> output with one fenced block per file."""

    def format(self, output_file: IO, records: Sequence[FileRecord]) -> None:
        safe_write_to_output(output_file, "<codebase>\n")
        safe_write_to_output(output_file, "<files>\n")
        for record in records:
            header = f"<file path={quoteattr(record.path)} tokens='{record.tokens}'>\n"
            safe_write_to_output(output_file, header)
            safe_write_to_output(output_file, "```\n")
            safe_write_to_output(output_file, record.content)
            if not record.content.endswith("\n"):
                safe_write_to_output(output_file, "\n")
            safe_write_to_output(output_file, "```\n")
            safe_write_to_output(output_file, "</file>\n\n")
        safe_write_to_output(output_file, "</files>\n")
        safe_write_to_output(output_file, "</codebase>\n")


def formatter(name: str = "text"):
    if name == "text":
        return TextFormatter()
    if name == "json":
        return JsonFormatter()
    if name == "xml":
        return XmlFormatter()
    raise FormatterNotFoundError(name)
