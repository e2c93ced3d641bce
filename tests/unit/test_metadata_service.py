import json

import pytest

from routinesync.errors import MetadataCorruptError, MetadataWriteError
from routinesync.services import metadata_service
from routinesync.services.metadata_service import (
    RoutineMetadataRecord,
    RoutineParameter,
    load_metadata,
    save_metadata,
    serialize_metadata,
)


def _record(name="get_user", **overrides):
    values = dict(
        routine_name=name,
        routine_type="procedure",
        designation="row1",
        signature="abc123",
        sql_mode="STRICT_ALL_TABLES",
        character_set="utf8mb4",
        collation="utf8mb4_general_ci",
        parameters=[RoutineParameter("p_id", "in", "int(10) unsigned")],
    )
    values.update(overrides)
    return RoutineMetadataRecord(**values)


def test_missing_file_yields_empty_snapshot(tmp_path):
    assert load_metadata(tmp_path / "routines.json") == {}


def test_save_then_load(tmp_path):
    path = tmp_path / "nested" / "routines.json"
    records = {
        "get_user": _record(),
        "count_users": _record(
            "count_users", routine_type="function", designation="function",
            return_type="int", parameters=[],
        ),
    }

    save_metadata(path, records)
    loaded = load_metadata(path)

    assert loaded == records
    payload = json.loads(path.read_text())
    assert list(payload) == ["count_users", "get_user"]
    assert payload["get_user"]["parameters"] == [
        {"mode": "in", "name": "p_id", "type": "int(10) unsigned"}
    ]
    assert payload["count_users"]["return"] == "int"


def test_serialization_is_deterministic():
    forward = {"a": _record("a"), "b": _record("b")}
    backward = {"b": _record("b"), "a": _record("a")}
    assert serialize_metadata(forward) == serialize_metadata(backward)
    assert serialize_metadata(forward).endswith("}\n")


def test_unknown_fields_are_ignored(tmp_path):
    path = tmp_path / "routines.json"
    data = _record().to_dict()
    data["wrapper_class"] = "Legacy"
    path.write_text(json.dumps({"get_user": data}))

    assert load_metadata(path)["get_user"] == _record()


@pytest.mark.parametrize(
    "content",
    [
        "{broken",
        "[]",
        json.dumps({"get_user": "not an object"}),
        json.dumps({"get_user": {"routine_type": "procedure"}}),
        json.dumps(
            {
                "get_user": {
                    "routine_type": "procedure",
                    "designation": "none",
                    "signature": "x",
                    "parameters": "p_id",
                }
            }
        ),
    ],
)
def test_corrupt_files_are_rejected(tmp_path, content):
    path = tmp_path / "routines.json"
    path.write_text(content)

    with pytest.raises(MetadataCorruptError, match="is corrupt"):
        load_metadata(path)


def test_failed_rename_keeps_previous_snapshot(tmp_path, monkeypatch):
    path = tmp_path / "routines.json"
    save_metadata(path, {"get_user": _record()})
    before = path.read_bytes()

    def broken_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(metadata_service.os, "replace", broken_replace)

    with pytest.raises(MetadataWriteError, match="read-only file system"):
        save_metadata(path, {"other": _record("other")})

    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["routines.json"]
