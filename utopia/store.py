"""YAML file storage for specs, work items, change requests and conversations."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from utopia.yamlcodec import from_yaml, spec_to_yaml, to_yaml


class StorageError(Exception):
    """Raised when a record cannot be read, written or removed."""


class NotFoundError(StorageError, LookupError):
    """Raised when a named record does not exist."""

    def __init__(self, resource: str, identifier: str) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.id = identifier


def _record_id(record: Mapping[str, Any]) -> str:
    return str(record.get("id") or "")


class YAMLStore:
    """Reads and writes records as YAML files below a base directory."""

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    # -- helpers -----------------------------------------------------------

    def _dir(self, *parts: str) -> Path:
        return self.base_dir.joinpath(*parts)

    @staticmethod
    def _ensure_dir(directory: Path, what: str) -> None:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create {what} directory: {exc}") from exc

    @staticmethod
    def _write(path: Path, text: str) -> None:
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to write file {path}: {exc}") from exc

    def _write_record(self, path: Path, record: Any) -> None:
        self._write(path, to_yaml(record))

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to read file {path}: {exc}") from exc
        try:
            data = from_yaml(text)
        except ValueError as exc:
            raise StorageError(f"failed to unmarshal YAML from {path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageError(f"failed to unmarshal YAML from {path}: not a mapping")
        return data

    @staticmethod
    def _list(
        directory: Path,
        suffix: str,
        load: Callable[[str], Any],
        label: str,
        what: str,
        skip: frozenset[str] = frozenset(),
    ) -> list[Any]:
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"failed to read {what} directory: {exc}") from exc

        records = []
        for entry in entries:
            if entry.is_dir() or not entry.name.endswith(suffix) or entry.name in skip:
                continue
            identifier = entry.name[: -len(suffix)]
            try:
                records.append(load(identifier))
            except StorageError as exc:
                raise StorageError(f"failed to load {label} {identifier}: {exc}") from exc
        return records

    # -- specs -------------------------------------------------------------

    def save_spec(self, spec: Mapping[str, Any]) -> None:
        """Write a spec to ``specs/<id>.yaml``."""
        directory = self._dir("specs")
        self._ensure_dir(directory, "specs")
        self._write(directory / f"{_record_id(spec)}.yaml", spec_to_yaml(spec))

    def load_spec(self, spec_id: str) -> dict[str, Any]:
        """Read ``specs/<id>.yaml``."""
        return self._read(self._dir("specs", f"{spec_id}.yaml"))

    def delete_spec(self, spec_id: str) -> None:
        """Remove a spec; raises NotFoundError when it does not exist."""
        try:
            self._dir("specs", f"{spec_id}.yaml").unlink()
        except FileNotFoundError as exc:
            raise NotFoundError("spec", spec_id) from exc
        except OSError as exc:
            raise StorageError(f"failed to delete spec {spec_id}: {exc}") from exc

    def list_specs(self) -> list[dict[str, Any]]:
        """All specs, ordered by file name."""
        return self._list(self._dir("specs"), ".yaml", self.load_spec, "spec", "specs")

    # -- work items --------------------------------------------------------

    def save_work_item(self, item: Mapping[str, Any]) -> None:
        """Write a work item to ``work-items/<id>.yaml``."""
        directory = self._dir("work-items")
        self._ensure_dir(directory, "work-items")
        self._write_record(directory / f"{_record_id(item)}.yaml", item)

    def save_work_item_for_spec(self, spec_id: str, item: Mapping[str, Any]) -> None:
        """Write a work item to ``work-items/<spec_id>/<id>.yaml``."""
        directory = self._dir("work-items", spec_id)
        self._ensure_dir(directory, f"work-items directory for spec {spec_id}; the")
        self._write_record(directory / f"{_record_id(item)}.yaml", item)

    def list_work_items_for_spec(self, spec_id: str) -> list[dict[str, Any]]:
        """Work items filed under one spec."""
        return self._list(
            self._dir("work-items", spec_id),
            ".yaml",
            lambda item_id: self.load_work_item_for_spec(spec_id, item_id),
            "work item",
            f"work-items directory for spec {spec_id}; the",
        )

    def load_work_item_for_spec(self, spec_id: str, item_id: str) -> dict[str, Any]:
        """Read ``work-items/<spec_id>/<id>.yaml``."""
        return self._read(self._dir("work-items", spec_id, f"{item_id}.yaml"))

    def load_work_item(self, item_id: str) -> dict[str, Any]:
        """Read ``work-items/<id>.yaml``."""
        return self._read(self._dir("work-items", f"{item_id}.yaml"))

    def list_work_items(self) -> list[dict[str, Any]]:
        """Work items from both the flat layout and the per-spec sub-directories."""
        directory = self._dir("work-items")
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"failed to read work-items directory: {exc}") from exc

        items: list[dict[str, Any]] = []
        for entry in entries:
            if entry.is_dir():
                items.extend(self.list_work_items_for_spec(entry.name))
                continue
            if not entry.name.endswith(".yaml"):
                continue
            item_id = entry.name.removesuffix(".yaml")
            try:
                items.append(self.load_work_item(item_id))
            except StorageError as exc:
                raise StorageError(f"failed to load work item {item_id}: {exc}") from exc
        return items

    # -- config ------------------------------------------------------------

    def save_config(self, config: Mapping[str, Any]) -> None:
        """Write the project configuration to ``config.yaml``."""
        self._write_record(self._dir("config.yaml"), config)

    def load_config(self) -> dict[str, Any]:
        """Read ``config.yaml``."""
        return self._read(self._dir("config.yaml"))

    # -- change requests ---------------------------------------------------

    def save_change_request(self, change_request: Mapping[str, Any]) -> None:
        """Write a change request to ``change-requests/<id>.yaml``."""
        directory = self._dir("change-requests")
        self._ensure_dir(directory, "change requests")
        self._write_record(directory / f"{_record_id(change_request)}.yaml", change_request)

    def load_change_request(self, cr_id: str) -> dict[str, Any]:
        """Read ``change-requests/<id>.yaml``."""
        return self._read(self._dir("change-requests", f"{cr_id}.yaml"))

    def delete_change_request(self, cr_id: str) -> None:
        """Remove a change request file."""
        try:
            self._dir("change-requests", f"{cr_id}.yaml").unlink()
        except OSError as exc:
            raise StorageError(f"failed to delete change request {cr_id}: {exc}") from exc

    def list_change_requests(self) -> list[dict[str, Any]]:
        """All change requests, skipping the template file."""
        return self._list(
            self._dir("change-requests"),
            ".yaml",
            self.load_change_request,
            "change request",
            "change requests",
            skip=frozenset({"_template.yaml"}),
        )

    # -- conversations -----------------------------------------------------

    def save_conversation(self, conversation: Mapping[str, Any]) -> None:
        """Write a conversation to ``conversations/<id>.yaml``."""
        directory = self._dir("conversations")
        self._ensure_dir(directory, "conversations")
        self._write_record(directory / f"{_record_id(conversation)}.yaml", conversation)

    def load_conversation(self, conversation_id: str) -> dict[str, Any]:
        """Read ``conversations/<id>.yaml``."""
        return self._read(self._dir("conversations", f"{conversation_id}.yaml"))

    def list_conversations(self) -> list[dict[str, Any]]:
        """All conversations, ordered by file name."""
        return self._list(
            self._dir("conversations"),
            ".yaml",
            self.load_conversation,
            "conversation",
            "conversations",
        )

    def load_conversations_by_cr(self, cr_id: str) -> list[dict[str, Any]]:
        """Conversations that record having created the given change request."""
        return [
            conversation
            for conversation in self.list_conversations()
            if any(
                isinstance(created, Mapping) and created.get("cr_id") == cr_id
                for created in conversation.get("crs_created") or []
            )
        ]