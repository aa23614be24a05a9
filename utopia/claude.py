"""Driving the ``claude`` command-line tool and reading its session transcripts."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import threading
import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Any


class PermissionMode(str, Enum):
    """How the tool handles permission prompts."""

    DEFAULT = "default"
    BYPASS = "bypassPermissions"
    ACCEPT_EDITS = "acceptEdits"
    DONT_ASK = "dontAsk"

    def __str__(self) -> str:
        return self.value


class ClaudeError(RuntimeError):
    """Raised when an invocation fails; ``output`` holds whatever was captured."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


@dataclass
class SessionResult:
    """Outcome of an interactive session."""

    output: str = ""
    error: BaseException | None = None


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _exit_message(prefix: str, returncode: int, stderr: bytes | None = None) -> str:
    message = f"{prefix}: exit status {returncode}"
    detail = _decode(stderr).strip() if stderr else ""
    return f"{message}: {detail}" if detail else message


@dataclass
class ClaudeCLI:
    """Wrapper around the ``claude`` binary."""

    binary_path: str = "claude"
    permission_mode: PermissionMode | str = PermissionMode.BYPASS
    allowed_tools: Sequence[str] = ()
    verbose: bool = False

    def base_args(self) -> list[str]:
        """Arguments shared by every invocation."""
        args: list[str] = []
        mode = str(self.permission_mode) if self.permission_mode else ""
        if mode and mode != PermissionMode.DEFAULT.value:
            args += ["--permission-mode", mode]
        if self.allowed_tools:
            args += ["--allowedTools", ",".join(self.allowed_tools)]
        return args

    def _command(self, args: Iterable[str]) -> list[str]:
        return [self.binary_path, *args]

    def session(self, system_prompt: str) -> SessionResult:
        """Run an interactive session attached to the current terminal."""
        args = self.base_args()
        if system_prompt:
            args += ["--system-prompt", system_prompt]
        try:
            completed = subprocess.run(self._command(args), check=False)
        except OSError as exc:
            raise ClaudeError(f"claude session failed: {exc}") from exc
        if completed.returncode != 0:
            raise ClaudeError(_exit_message("claude session failed", completed.returncode))
        return SessionResult()

    def prompt(self, prompt: str) -> str:
        """Send a one-shot prompt and return the response text.

        In verbose mode the output is streamed to the terminal while it is captured.
        """
        args = [*self.base_args(), "--print", prompt]
        if self.verbose:
            return self._streaming_prompt(args)
        return self._capture(args)

    def prompt_with_system_prompt(self, system_prompt: str, prompt: str) -> str:
        """Send a one-shot prompt with a custom system prompt."""
        args = [*self.base_args(), "--system-prompt", system_prompt, "--print", prompt]
        return self._capture(args)

    def _capture(self, args: list[str]) -> str:
        try:
            completed = subprocess.run(
                self._command(args),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
            )
        except OSError as exc:
            raise ClaudeError(f"claude prompt failed: {exc}") from exc
        if completed.returncode != 0:
            raise ClaudeError(
                _exit_message("claude prompt failed", completed.returncode, completed.stderr)
            )
        return _decode(completed.stdout)

    def _streaming_prompt(self, args: list[str]) -> str:
        command = self._command([*args, "--verbose"])
        try:
            process = subprocess.Popen(
                command, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except OSError as exc:
            raise ClaudeError(f"failed to start claude: {exc}") from exc

        captured: list[str] = []

        def pump(stream: IO[bytes], sink: IO[str], keep: bool) -> None:
            for raw in stream:
                line = _decode(raw)
                sink.write(line)
                sink.flush()
                if keep:
                    captured.append(line)

        with process:
            assert process.stdout is not None and process.stderr is not None
            readers = [
                threading.Thread(target=pump, args=(process.stdout, sys.stdout, True)),
                threading.Thread(target=pump, args=(process.stderr, sys.stderr, False)),
            ]
            for reader in readers:
                reader.start()
            for reader in readers:
                reader.join()
            returncode = process.wait()

        output = "".join(captured)
        if returncode != 0:
            raise ClaudeError(_exit_message("claude prompt failed", returncode), output=output)
        return output

    def stream_session(
        self, system_prompt: str, on_output: Callable[[str], Any] | None
    ) -> None:
        """Run a session, echoing each output line and passing it to ``on_output``."""
        args = self.base_args()
        if system_prompt:
            args += ["--system-prompt", system_prompt]
        try:
            process = subprocess.Popen(self._command(args), stdout=subprocess.PIPE)
        except OSError as exc:
            raise ClaudeError(f"failed to start claude: {exc}") from exc

        with process:
            assert process.stdout is not None
            for raw in process.stdout:
                line = _decode(raw)
                if not line.endswith("\n"):
                    break
                sys.stdout.write(line)
                sys.stdout.flush()
                if on_output is not None:
                    on_output(line.rstrip("\n"))
            returncode = process.wait()

        if returncode != 0:
            raise ClaudeError(_exit_message("claude session failed", returncode))

    def session_with_capture(self, system_prompt: str) -> str:
        """Run an interactive session and return its transcript.

        The transcript is read even when the session fails or is interrupted; in
        that case it is carried on the raised error's ``output``.
        """
        session_id = str(uuid.uuid4())
        args = [*self.base_args(), "--session-id", session_id]
        if system_prompt:
            args += ["--system-prompt", system_prompt]

        failure: str | None = None
        cause: BaseException | None = None
        try:
            completed = subprocess.run(self._command(args), check=False)
            if completed.returncode != 0:
                failure = _exit_message("claude session failed", completed.returncode)
        except OSError as exc:
            failure, cause = f"failed to start claude: {exc}", exc
        except KeyboardInterrupt as exc:
            failure, cause = "claude session interrupted", exc

        try:
            transcript = self.read_session_transcript(session_id)
        except ClaudeError:
            transcript = ""

        if failure is not None:
            raise ClaudeError(failure, output=transcript) from cause
        return transcript

    def read_session_transcript(self, session_id: str) -> str:
        """Read and format the stored transcript of a session."""
        try:
            path = session_file_path(session_id)
        except (OSError, RuntimeError) as exc:
            raise ClaudeError(f"failed to locate session storage: {exc}") from exc
        try:
            handle = open(path, encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ClaudeError(f"failed to open session file {path}: {exc}") from exc
        with handle:
            return parse_session_jsonl(handle)


def session_file_path(
    session_id: str, home: str | Path | None = None, cwd: str | Path | None = None
) -> Path:
    """Location of a session's JSONL file for the given project directory."""
    home_dir = Path(home) if home is not None else Path.home()
    project = str(cwd) if cwd is not None else os.getcwd()
    encoded = project.replace("/", "-").replace(".", "-")
    return home_dir / ".claude" / "projects" / encoded / f"{session_id}.jsonl"


def _decode_record(line: str) -> dict[str, Any] | None:
    try:
        record = json.loads(line)
    except ValueError:
        return None
    if not isinstance(record, dict):
        return None
    for key in ("type", "timestamp"):
        if record.get(key) is not None and not isinstance(record[key], str):
            return None
    message = record.get("message")
    if message is not None:
        if not isinstance(message, dict):
            return None
        if message.get("role") is not None and not isinstance(message["role"], str):
            return None
    return record


def parse_session_jsonl(lines: Iterable[str] | str) -> str:
    """Format session JSONL records as a Markdown transcript of user and assistant turns."""
    if isinstance(lines, str):
        lines = lines.splitlines()

    parts: list[str] = []
    for line in lines:
        line = line.removesuffix("\n").removesuffix("\r")
        if not line:
            continue
        record = _decode_record(line)
        if record is None:
            continue
        kind = record.get("type")
        message = record.get("message") or {}
        content = message.get("content")

        if kind == "user":
            text = extract_user_content(content)
            if text:
                parts.append(f"\n## User\n\n{text}\n")
        elif kind == "assistant":
            blocks = extract_assistant_content(content)
            if blocks:
                parts.append("\n## Assistant\n\n")
                parts.extend(f"{block}\n" for block in blocks)

    return "".join(parts)


def _content_blocks(raw: Any) -> list[dict[str, Any]] | None:
    """Content blocks from a decoded array, or None when it is not a valid block list."""
    if not isinstance(raw, list):
        return None
    blocks: list[dict[str, Any]] = []
    for item in raw:
        if item is None:
            blocks.append({})
            continue
        if not isinstance(item, dict):
            return None
        for key in ("type", "text", "name"):
            if item.get(key) is not None and not isinstance(item[key], str):
                return None
        blocks.append(item)
    return blocks


def _unwrap_injected(text: str) -> str:
    try:
        inner = json.loads(text)
    except ValueError:
        return text
    if isinstance(inner, dict):
        message = inner.get("message")
        if isinstance(message, dict):
            content = message.get("content")
            if isinstance(content, str) and content:
                return content
    return text


def extract_user_content(raw: Any) -> str:
    """Text of a user message from its decoded ``content`` value."""
    if isinstance(raw, str):
        return _unwrap_injected(raw)
    blocks = _content_blocks(raw)
    if blocks is None:
        return ""
    return "\n".join(
        block["text"] for block in blocks if block.get("type") == "text" and block.get("text")
    )


def extract_assistant_content(raw: Any) -> list[str]:
    """Text blocks and tool calls of an assistant message from its decoded ``content``."""
    blocks = _content_blocks(raw)
    if blocks is not None:
        results: list[str] = []
        for block in blocks:
            kind = block.get("type")
            if kind == "text" and block.get("text"):
                results.append(block["text"])
            elif kind == "tool_use":
                results.append(f"[Tool: {block.get('name') or ''}]")
        return results
    if isinstance(raw, str) and raw:
        return [raw]
    return []