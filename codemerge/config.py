"""
Project configuration: .codemerge.yaml contexts.

A config file holds named contexts, each a preset of filters and ignores:

    version: 1
    contexts:
      - context: default
        filters: ["**"]
        ignores: [".git/", "*.lock"]
"""

import os
import logging
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_FILE = ".codemerge.yaml"
DEFAULT_CONTEXT = "default"
CONFIG_VERSION = 1

DEFAULT_CONFIG_TEMPLATE = """
version: 1  # Version of the codemerge configuration format.

contexts:
    # Each context is a named preset; 'default' is used when none is given.
    - context: default

      filters:
      # Glob patterns selecting files to consider. "**" matches everything.
      - "**"

      ignores:
      # Patterns for files or directories to skip, in .gitignore syntax.
      - ".git/"
      - "*.lock"
"""


class ConfigError(Exception):
    pass


class Context(BaseModel):
    context: str
    filters: List[str] = Field(default_factory=lambda: ["**"])
    ignores: List[str] = Field(default_factory=list)


class Config(BaseModel):
    version: Literal[1]
    contexts: List[Context]


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "config"
    return f"{location}: {first['msg']}"


def parse_config(data: Any) -> List[Context]:
    """Validate a parsed YAML document and return its contexts."""
    if not isinstance(data, dict):
        raise ConfigError("Config must be a mapping")
    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {_describe(e)}") from e
    return config.contexts


def select_context(contexts: List[Context], name: Optional[str] = None) -> Context:
    """Find a context by name; 'default' falls back to the first one."""
    name = name or DEFAULT_CONTEXT
    for ctx in contexts:
        if ctx.context == name:
            return ctx
    if name == DEFAULT_CONTEXT and contexts:
        return contexts[0]
    raise ConfigError(f"Context '{name}' not found in config.")


def load_config(path: str, context: Optional[str] = None) -> Context:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid UTF-8: {e}") from e
    return select_context(parse_config(data), context)


def load(
    cwd: Optional[str] = None,
    config_path: Optional[str] = None,
    context: Optional[str] = None,
) -> Optional[Context]:
    """
    Load the context for a run, or None when there is no config file.

    An explicitly requested config_path that does not exist is an error.
    """
    cwd = cwd or os.getcwd()
    path = config_path or os.path.join(cwd, DEFAULT_CONFIG_FILE)

    if not os.path.isfile(path):
        if config_path:
            raise ConfigError(f"Config file not found: {config_path}")
        logging.debug(f"No config file at {path}")
        return None

    ctx = load_config(path, context)
    logging.info(f"Using config context '{ctx.context}' from {path}")
    return ctx


def merge_with_defaults(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Fill keys of target that are unset (None) with values from source."""
    result = dict(target)
    for key, value in source.items():
        if result.get(key) is None:
            result[key] = value
    return result


def write_default_config(path: str, force: bool = False) -> bool:
    """Write the config template. Returns False if the file exists and force is off."""
    if os.path.exists(path) and not force:
        return False
    with open(path, "w", encoding="utf-8") as f:
        f.write(DEFAULT_CONFIG_TEMPLATE)
    return True
