from datetime import datetime, timezone

import pytest

from utopia.store import NotFoundError, StorageError, YAMLStore


def _feature(feature_id, description, *criteria):
    return {"id": feature_id, "description": description, "acceptance_criteria": list(criteria)}


def _spec(spec_id, title, features=()):
    now = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    return {
        "id": spec_id,
        "title": title,
        "created": now,
        "updated": now,
        "description": "",
        "features": list(features),
    }


@pytest.fixture
def store(tmp_path):
    (tmp_path / "specs").mkdir()
    (tmp_path / "change-requests").mkdir()
    return YAMLStore(tmp_path)


def test_feature_spacing_in_saved_file(store, tmp_path):
    features = [
        _feature(
            "feature-one",
            "First feature with a longer description\nthat spans multiple lines",
            "Criterion A",
            "Criterion B",
        ),
        _feature("feature-two", "Second feature", "Criterion C"),
        _feature("feature-three", "Third feature", "Criterion D"),
    ]
    store.save_spec(_spec("test-spec", "Test Spec", features))
    content = (tmp_path / "specs" / "test-spec.yaml").read_text()
    assert "\n\n    - id: feature-two" in content
    assert "\n\n    - id: feature-three" in content
    assert "description: |" in content
    loaded = store.load_spec("test-spec")
    assert loaded["features"] == features


def test_block_style_description(store, tmp_path):
    features = [
        _feature("multiline-feature", "This is a longer description\nthat should use block style", "Works")
    ]
    store.save_spec(_spec("block-test", "Block Style Test", features))
    assert "description: |" in (tmp_path / "specs" / "block-test.yaml").read_text()
    loaded = store.load_spec("block-test")
    assert loaded["features"][0]["description"] == (
        "This is a longer description\nthat should use block style"
    )


def test_save_and_load_spec_round_trip(store):
    features = [_feature("keep-feature", "Keep this", "Works"), _feature("other", "Other", "Old")]
    store.save_spec(_spec("parent-spec", "Parent Spec", features))
    loaded = store.load_spec("parent-spec")
    assert loaded["title"] == "Parent Spec"
    assert loaded["features"] == features


def test_delete_spec_success(store):
    store.save_spec(_spec("to-delete", "Spec To Delete", [_feature("feature-1", "A feature", "Works")]))
    assert store.load_spec("to-delete")["id"] == "to-delete"
    store.delete_spec("to-delete")
    with pytest.raises(StorageError):
        store.load_spec("to-delete")


def test_delete_spec_not_found(store):
    with pytest.raises(NotFoundError, match="spec not found") as info:
        store.delete_spec("nonexistent")
    assert info.value.id == "nonexistent"


def test_list_specs(store, tmp_path):
    store.save_spec(_spec("b-spec", "B"))
    store.save_spec(_spec("a-spec", "A"))
    (tmp_path / "specs" / "notes.txt").write_text("ignored")
    assert [spec["id"] for spec in store.list_specs()] == ["a-spec", "b-spec"]


def test_list_specs_missing_directory(tmp_path):
    assert YAMLStore(tmp_path / "nowhere").list_specs() == []


def test_list_specs_wraps_load_error(store, tmp_path):
    (tmp_path / "specs" / "broken.yaml").write_text("key: [unclosed")
    with pytest.raises(StorageError, match="failed to load spec broken"):
        store.list_specs()


def test_load_missing_spec_reports_path(store):
    with pytest.raises(StorageError, match="failed to read file"):
        store.load_spec("absent")


def test_delete_change_request_after_save(store):
    cr = {"id": "to-delete-cr", "title": "Will Be Deleted", "parent_spec": "parent-spec"}
    store.save_change_request(cr)
    assert store.load_change_request("to-delete-cr")["title"] == "Will Be Deleted"
    store.delete_change_request("to-delete-cr")
    with pytest.raises(StorageError):
        store.load_change_request("to-delete-cr")


def test_delete_missing_change_request(store):
    with pytest.raises(StorageError, match="failed to delete change request ghost"):
        store.delete_change_request("ghost")


def test_list_change_requests_skips_template(store, tmp_path):
    (tmp_path / "change-requests" / "_template.yaml").write_text("id: template\n")
    store.save_change_request({"id": "real-cr", "title": "Real"})
    assert [cr["id"] for cr in store.list_change_requests()] == ["real-cr"]


def test_work_items_flat_and_nested(store, tmp_path):
    store.save_work_item({"id": "legacy", "title": "Legacy item"})
    store.save_work_item_for_spec("spec-a", {"id": "wi-1", "title": "Nested item"})
    (tmp_path / "work-items" / "notes.txt").write_text("ignored")
    assert store.load_work_item("legacy")["title"] == "Legacy item"
    assert store.load_work_item_for_spec("spec-a", "wi-1")["title"] == "Nested item"
    assert [item["id"] for item in store.list_work_items_for_spec("spec-a")] == ["wi-1"]
    assert [item["id"] for item in store.list_work_items()] == ["legacy", "wi-1"]


def test_work_items_missing_directory(store):
    assert store.list_work_items() == []
    assert store.list_work_items_for_spec("none") == []


def test_config_round_trip(store):
    config = {"project": "demo", "tags": ["a", "b"]}
    store.save_config(config)
    assert store.load_config() == config


def test_conversations_by_cr(store):
    store.save_conversation({"id": "conv-a", "crs_created": [{"cr_id": "cr-1"}]})
    store.save_conversation({"id": "conv-b", "crs_created": [{"cr_id": "cr-2"}]})
    store.save_conversation({"id": "conv-c"})
    assert [conv["id"] for conv in store.list_conversations()] == ["conv-a", "conv-b", "conv-c"]
    assert [conv["id"] for conv in store.load_conversations_by_cr("cr-1")] == ["conv-a"]
    assert store.load_conversations_by_cr("cr-9") == []