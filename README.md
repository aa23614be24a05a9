# utopia

Utopia keeps a project's specs, change requests, work items, conversations
and drafts as readable YAML files under a base directory, usually
`.utopia/`. It also has a small wrapper around the `claude` command-line
tool. The wrapper runs sessions, sends one-shot prompts and turns stored
session logs into Markdown transcripts.

Records are plain mappings. For example, a spec is a dict with keys `id`,
`title`, `created`, `updated`, `description`, `domain_knowledge` and
`features`. Loading a record returns a dict.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Storage

### `utopia.store.YAMLStore`

`YAMLStore(base_dir)` keeps each kind of record in its own place under
`base_dir`.

| Record | Location | Methods |
| --- | --- | --- |
| Specs | `specs/<id>.yaml` | `save_spec`, `load_spec`, `delete_spec`, `list_specs` |
| Work items (flat layout) | `work-items/<id>.yaml` | `save_work_item`, `load_work_item` |
| Work items (per spec) | `work-items/<spec_id>/<id>.yaml` | `save_work_item_for_spec`, `load_work_item_for_spec`, `list_work_items_for_spec` |
| Configuration | `config.yaml` | `save_config`, `load_config` |
| Change requests | `change-requests/<id>.yaml` | `save_change_request`, `load_change_request`, `delete_change_request`, `list_change_requests` |
| Conversations | `conversations/<id>.yaml` | `save_conversation`, `load_conversation`, `list_conversations`, `load_conversations_by_cr` |

How the methods behave:

- `list_work_items` returns the work items from both layouts.
- The `list_*` methods return records ordered by file name. They return an
  empty list when the directory does not exist.
- `list_change_requests` skips `_template.yaml`.
- `load_conversations_by_cr(cr_id)` returns the conversations that have an
  entry with a matching `cr_id` in their `crs_created` list.
- Failures to read, write or parse a file raise `StorageError`.
- `delete_spec` raises `NotFoundError` for a missing spec, with the message
  `spec not found: <id>`. `NotFoundError` is a subclass of both
  `StorageError` and `LookupError`.

### `utopia.drafts.DraftStore`

`DraftStore` is a `YAMLStore` that also stores the following records.

| Record | Location | Methods |
| --- | --- | --- |
| Domain docs | `domain/<id>.yaml` | `save_domain_doc`, `load_domain_doc`, `list_domain_docs` |
| Concept docs | `concepts/<id>.md` | `save_concept_doc`, `load_concept_doc`, `list_concept_docs` |
| Draft specs | `drafts/specs/<id>.yaml` | `save_draft`, `load_draft`, `list_drafts`, `delete_draft` |
| Spec discovery state | `drafts/specs/.discovery-state` | `save_discovery_state`, `load_discovery_state` |
| Draft domain docs | `drafts/domain/<id>.yaml` | `save_draft_domain_doc`, `load_draft_domain_doc`, `list_draft_domain_docs`, `delete_draft_domain_doc` |
| Domain discovery state | `drafts/domain/.discovery-state` | `save_domain_discovery_state`, `load_domain_discovery_state` |

How the methods behave:

- Concept docs are Markdown files with YAML frontmatter. The body of the file
  is stored under the `content` key.
- Loading or deleting a draft or a draft domain doc that does not exist
  raises `NotFoundError`.
- A discovery state that has never been saved loads as `None`.

## YAML layout: `utopia.yamlcodec`

- `to_yaml(data)` renders dicts, lists, dataclasses, enums, datetimes and
  paths. Multi-line strings are written in literal block style.
- `from_yaml(text)` parses YAML into builtin types. It raises `ValueError` on
  invalid input.
- `spec_to_yaml(spec)` writes a spec with a fixed field order. A feature
  description that is multi-line or longer than 60 characters is written in
  `|` block style.
- `add_feature_spacing(content)` inserts a blank line before each feature
  after the first in a `features:` list.
- `render_concept(doc)` writes a concept document.
  `parse_concept(text, path)` reads one back.

## Formatting: `utopia.formatter`

`format_yaml(content)` reformats YAML text. It accepts `str` or `bytes` and
returns the same type it was given. The output has these properties:

- two-space indentation
- blank lines kept
- no trailing whitespace
- a newline at the end

Invalid YAML raises `FormatError`.

## The claude wrapper: `utopia.claude`

`ClaudeCLI` is a dataclass with four fields:

- `binary_path`, default `"claude"`.
- `permission_mode`, a `PermissionMode`, default `PermissionMode.BYPASS`.
  `PermissionMode.DEFAULT` adds no flag.
- `allowed_tools`, a list of tool names. When it is not empty it is passed
  as `--allowedTools` joined with commas.
- `verbose`, default `False`.

`base_args()` returns the flags shared by every call. Its methods:

- `prompt(prompt)` runs `--print` and returns the response text. With
  `verbose=True` it also streams the output to the terminal.
- `prompt_with_system_prompt(system_prompt, prompt)` does the same with a
  custom system prompt.
- `session(system_prompt)` runs an interactive session attached to the
  terminal and returns a `SessionResult`.
- `stream_session(system_prompt, on_output)` echoes each output line and
  passes it, without its newline, to `on_output`.
- `session_with_capture(system_prompt)` runs an interactive session under a
  fresh session id, then returns the transcript that the tool stored for
  that id.
- `read_session_transcript(session_id)` reads the stored log found by
  `session_file_path`. That path is
  `~/.claude/projects/<cwd with "/" and "." replaced by "-">/<id>.jsonl`.

A failed run raises `ClaudeError`. Any output captured before the failure is
kept in its `output` attribute. This includes the transcript when
`session_with_capture` fails or is interrupted.

`parse_session_jsonl(lines)` turns session JSONL into Markdown:

- Each user or assistant message gets a `## User` or `## Assistant` heading.
- Tool calls are shown as `[Tool: Name]`.
- Other record types, and lines that cannot be parsed, are skipped.

`extract_user_content` and `extract_assistant_content` handle a single
message's decoded `content`.

## What it does not do

- It has no command-line program; it is a library.
- It does not validate records or model them as typed objects. It does not
  apply a change request's changes to a spec.
- It has no storage for ADRs.
- It does not update a conversation's status or append execution log
  entries.

## Example

```python
from utopia.store import YAMLStore
from utopia.formatter import format_yaml

store = YAMLStore(".utopia")
store.save_spec({
    "id": "login",
    "title": "Login",
    "features": [
        {"id": "form", "description": "A login form", "acceptance_criteria": ["Renders"]},
    ],
})
for spec in store.list_specs():
    print(spec["id"], spec["title"])

print(format_yaml(b"root:\n    child: value\n").decode())
```

```python
from utopia.claude import ClaudeCLI, PermissionMode

cli = ClaudeCLI(permission_mode=PermissionMode.ACCEPT_EDITS, allowed_tools=["Read"])
print(cli.base_args())  # ['--permission-mode', 'acceptEdits', '--allowedTools', 'Read']
answer = cli.prompt("Summarise this repository")
```