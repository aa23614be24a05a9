"""Storage for domain docs, concept docs, draft specs and discovery state."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from utopia.store import NotFoundError, StorageError, YAMLStore
from utopia.yamlcodec import parse_concept, render_concept

DISCOVERY_STATE_FILE = ".discovery-state"


def _record_id(record: Mapping[str, Any]) -> str:
    return str(record.get("id") or "")


def _is_missing(exc: StorageError) -> bool:
    return isinstance(exc.__cause__, FileNotFoundError)


class DraftStore(YAMLStore):
    """YAML store extended with domain knowledge, concepts and drafts."""

    # -- domain docs -------------------------------------------------------

    def save_domain_doc(self, doc: Mapping[str, Any]) -> None:
        """Write a domain doc to ``domain/<id>.yaml``."""
        directory = self._dir("domain")
        self._ensure_dir(directory, "domain")
        self._write_record(directory / f"{_record_id(doc)}.yaml", doc)

    def load_domain_doc(self, doc_id: str) -> dict[str, Any]:
        """Read ``domain/<id>.yaml``."""
        return self._read(self._dir("domain", f"{doc_id}.yaml"))

    def list_domain_docs(self) -> list[dict[str, Any]]:
        """All domain docs, ordered by file name."""
        return self._list(
            self._dir("domain"), ".yaml", self.load_domain_doc, "domain doc", "domain"
        )

    # -- concept docs ------------------------------------------------------

    def save_concept_doc(self, doc: Mapping[str, Any]) -> None:
        """Write a concept as Markdown with YAML frontmatter to ``concepts/<id>.md``."""
        directory = self._dir("concepts")
        self._ensure_dir(directory, "concepts")
        path = directory / f"{_record_id(doc)}.md"
        try:
            text = render_concept(doc)
        except Exception as exc:
            raise StorageError(f"failed to marshal concept frontmatter: {exc}") from exc
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to write concept file {path}: {exc}") from exc

    def load_concept_doc(self, doc_id: str) -> dict[str, Any]:
        """Read ``concepts/<id>.md``; the Markdown body is returned as ``content``."""
        path = self._dir("concepts", f"{doc_id}.md")
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to read concept file {path}: {exc}") from exc
        try:
            return parse_concept(text, path)
        except ValueError as exc:
            raise StorageError(str(exc)) from exc

    def list_concept_docs(self) -> list[dict[str, Any]]:
        """All concept docs, ordered by file name."""
        return self._list(
            self._dir("concepts"), ".md", self.load_concept_doc, "concept doc", "concepts"
        )

    # -- draft specs -------------------------------------------------------

    def _draft_specs_dir(self) -> Path:
        return self._dir("drafts", "specs")

    def save_draft(self, draft: Mapping[str, Any]) -> None:
        """Write a draft spec to ``drafts/specs/<id>.yaml``."""
        directory = self._draft_specs_dir()
        self._ensure_dir(directory, "drafts/specs")
        self._write_record(directory / f"{_record_id(draft)}.yaml", draft)

    def load_draft(self, draft_id: str) -> dict[str, Any]:
        """Read a draft spec; raises NotFoundError when it does not exist."""
        try:
            return self._read(self._draft_specs_dir() / f"{draft_id}.yaml")
        except StorageError as exc:
            if _is_missing(exc):
                raise NotFoundError("draft", draft_id) from exc
            raise

    def list_drafts(self) -> list[dict[str, Any]]:
        """All draft specs, ordered by file name."""
        return self._list(self._draft_specs_dir(), ".yaml", self.load_draft, "draft", "drafts")

    def delete_draft(self, draft_id: str) -> None:
        """Remove a draft spec; raises NotFoundError when it does not exist."""
        try:
            (self._draft_specs_dir() / f"{draft_id}.yaml").unlink()
        except FileNotFoundError as exc:
            raise NotFoundError("draft", draft_id) from exc
        except OSError as exc:
            raise StorageError(f"failed to delete draft {draft_id}: {exc}") from exc

    def load_discovery_state(self) -> dict[str, Any] | None:
        """Spec discovery state, or None when none has been saved."""
        try:
            return self._read(self._draft_specs_dir() / DISCOVERY_STATE_FILE)
        except StorageError as exc:
            if _is_missing(exc):
                return None
            raise

    def save_discovery_state(self, state: Mapping[str, Any]) -> None:
        """Write spec discovery state to ``drafts/specs/.discovery-state``."""
        directory = self._draft_specs_dir()
        self._ensure_dir(directory, "drafts/specs")
        self._write_record(directory / DISCOVERY_STATE_FILE, state)

    # -- draft domain docs -------------------------------------------------

    def _draft_domain_dir(self) -> Path:
        return self._dir("drafts", "domain")

    def save_draft_domain_doc(self, draft: Mapping[str, Any]) -> None:
        """Write a draft domain doc to ``drafts/domain/<id>.yaml``."""
        directory = self._draft_domain_dir()
        self._ensure_dir(directory, "drafts/domain")
        self._write_record(directory / f"{_record_id(draft)}.yaml", draft)

    def load_draft_domain_doc(self, draft_id: str) -> dict[str, Any]:
        """Read a draft domain doc; raises NotFoundError when it does not exist."""
        try:
            return self._read(self._draft_domain_dir() / f"{draft_id}.yaml")
        except StorageError as exc:
            if _is_missing(exc):
                raise NotFoundError("draft domain doc", draft_id) from exc
            raise

    def list_draft_domain_docs(self) -> list[dict[str, Any]]:
        """All draft domain docs, ordered by file name."""
        return self._list(
            self._draft_domain_dir(),
            ".yaml",
            self.load_draft_domain_doc,
            "draft domain doc",
            "drafts/domain",
            skip=frozenset({DISCOVERY_STATE_FILE}),
        )

    def delete_draft_domain_doc(self, draft_id: str) -> None:
        """Remove a draft domain doc; raises NotFoundError when it does not exist."""
        try:
            (self._draft_domain_dir() / f"{draft_id}.yaml").unlink()
        except FileNotFoundError as exc:
            raise NotFoundError("draft domain doc", draft_id) from exc
        except OSError as exc:
            raise StorageError(f"failed to delete draft domain doc {draft_id}: {exc}") from exc

    def load_domain_discovery_state(self) -> dict[str, Any] | None:
        """Domain discovery state, or None when none has been saved."""
        try:
            return self._read(self._draft_domain_dir() / DISCOVERY_STATE_FILE)
        except StorageError as exc:
            if _is_missing(exc):
                return None
            raise

    def save_domain_discovery_state(self, state: Mapping[str, Any]) -> None:
        """Write domain discovery state to ``drafts/domain/.discovery-state``."""
        directory = self._draft_domain_dir()
        self._ensure_dir(directory, "drafts/domain")
        self._write_record(directory / DISCOVERY_STATE_FILE, state)