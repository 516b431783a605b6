"""codemerge: token-aware file selection, merging and reporting for LLM prompts."""

__version__ = "0.3.0"
