"""Serialising records to and from the YAML layout kept on disk."""

from __future__ import annotations

import dataclasses
import io
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from pathlib import PurePath
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError
from ruamel.yaml.scalarstring import LiteralScalarString

BLOCK_DESCRIPTION_LENGTH = 60
ZERO_TIME = "0001-01-01T00:00:00+00:00"


def _dumper() -> YAML:
    yaml = YAML(typ="rt")
    yaml.indent(mapping=4, sequence=6, offset=4)
    yaml.width = 4096
    return yaml


def _dump(data: Any) -> str:
    buffer = io.StringIO()
    _dumper().dump(data, buffer)
    return buffer.getvalue()


def _format_time(value: datetime | str | None) -> str:
    """Timestamp with nanosecond-style trimmed fraction and a numeric offset."""
    if value is None:
        return ZERO_TIME
    if isinstance(value, str):
        return value
    if value.tzinfo is None:
        value = value.astimezone()
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = int(value.utcoffset().total_seconds())
    sign = "+" if offset >= 0 else "-"
    hours, rest = divmod(abs(offset), 3600)
    return f"{text}{sign}{hours:02d}:{rest // 60:02d}"


def _plain(value: Any) -> Any:
    """Reduce a value to YAML-friendly builtins; multi-line strings use block style."""
    if isinstance(value, Enum):
        return _plain(value.value)
    if isinstance(value, datetime):
        return _format_time(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _plain(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, str) and "\n" in value:
        return LiteralScalarString(value)
    return value


def add_feature_spacing(content: str) -> str:
    """Insert a blank line before every feature after the first in a ``features:`` list."""
    result: list[str] = []
    in_features = False
    first_feature = True

    for line in content.split("\n"):
        if line.startswith("features:"):
            in_features = True
            first_feature = True
            result.append(line)
            continue

        if in_features and line and line[0] != " ":
            in_features = False

        if in_features and line.lstrip(" ").startswith("- id:"):
            if not first_feature and result and result[-1].strip():
                result.append("")
            first_feature = False

        result.append(line)

    return "\n".join(result)


def _feature_node(feature: Mapping[str, Any]) -> dict[str, Any]:
    description = str(feature.get("description") or "")
    if "\n" in description or len(description) > BLOCK_DESCRIPTION_LENGTH:
        description = LiteralScalarString(description)
    return {
        "id": _plain(feature.get("id") or ""),
        "description": description,
        "acceptance_criteria": [
            _plain(criterion) for criterion in feature.get("acceptance_criteria") or []
        ],
    }


def spec_to_yaml(spec: Mapping[str, Any]) -> str:
    """Render a spec, with long or multi-line feature descriptions in block style."""
    record: dict[str, Any] = {
        "id": _plain(spec.get("id") or ""),
        "title": _plain(spec.get("title") or ""),
        "created": _format_time(spec.get("created")),
        "updated": _format_time(spec.get("updated")),
        "description": _plain(spec.get("description") or ""),
    }
    knowledge = list(spec.get("domain_knowledge") or [])
    if knowledge:
        record["domain_knowledge"] = _plain(knowledge)
    record["features"] = [_feature_node(feature) for feature in spec.get("features") or []]
    return add_feature_spacing(_dump(record))


def to_yaml(data: Any) -> str:
    """Render any record as YAML, spacing out feature lists."""
    return add_feature_spacing(_dump(_plain(data)))


def from_yaml(text: str) -> Any:
    """Parse YAML text into builtin dicts, lists and scalars."""
    try:
        return YAML(typ="safe", pure=True).load(text)
    except YAMLError as exc:
        raise ValueError(f"invalid YAML: {exc}") from exc


def render_concept(doc: Mapping[str, Any]) -> str:
    """Markdown document with the concept's fields as YAML frontmatter."""
    fields = {key: value for key, value in _plain(doc).items() if key != "content"}
    return f"---\n{_dump(fields)}---\n\n{doc.get('content') or ''}"


def parse_concept(text: str, path: Any = "") -> dict[str, Any]:
    """Read a concept document written by :func:`render_concept`."""
    if not text.startswith("---\n"):
        raise ValueError(f"concept file {path} missing YAML frontmatter")
    end = text[4:].find("\n---")
    if end == -1:
        raise ValueError(f"concept file {path} has unclosed YAML frontmatter")

    frontmatter = text[4 : 4 + end]
    body_start = 4 + end + 4
    try:
        fields = from_yaml(frontmatter)
    except ValueError as exc:
        raise ValueError(
            f"failed to unmarshal concept frontmatter from {path}: {exc}"
        ) from exc
    if fields is None:
        fields = {}
    if not isinstance(fields, dict):
        raise ValueError(f"failed to unmarshal concept frontmatter from {path}: not a mapping")

    doc = dict(fields)
    doc.setdefault("content", "")
    if body_start < len(text):
        doc["content"] = text[body_start:].removeprefix("\n")
    return doc