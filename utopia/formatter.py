"""YAML formatting with the project's house style."""

from __future__ import annotations

import io
from typing import overload

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

INDENT = 2


class FormatError(ValueError):
    """Raised when content cannot be parsed as YAML."""


def _make_yaml() -> YAML:
    yaml = YAML(typ="rt")
    yaml.indent(mapping=INDENT, sequence=INDENT * 2, offset=INDENT)
    yaml.preserve_quotes = True
    yaml.width = 4096
    return yaml


def _trim_trailing_whitespace(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.split("\n"))


@overload
def format_yaml(content: str) -> str: ...
@overload
def format_yaml(content: bytes) -> bytes: ...


def format_yaml(content: str | bytes) -> str | bytes:
    """Reformat YAML: two-space indent, blank lines kept, no trailing whitespace,
    newline at end of file. Returns the same type it was given."""
    as_bytes = isinstance(content, (bytes, bytearray))
    try:
        text = bytes(content).decode("utf-8") if as_bytes else content
    except UnicodeDecodeError as exc:
        raise FormatError(f"content is not valid UTF-8: {exc}") from exc

    yaml = _make_yaml()
    buffer = io.StringIO()
    try:
        documents = list(yaml.load_all(_trim_trailing_whitespace(text)))
        if len(documents) > 1:
            yaml.explicit_start = True
        yaml.dump_all(documents, buffer)
    except YAMLError as exc:
        raise FormatError(f"invalid YAML: {exc}") from exc

    result = _trim_trailing_whitespace(buffer.getvalue())
    if result and not result.endswith("\n"):
        result += "\n"
    return result.encode("utf-8") if as_bytes else result