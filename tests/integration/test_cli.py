import json
import re

import pytest
from rich.console import Console
from typer.testing import CliRunner

from routinesync import __version__
from routinesync.cli import app
from routinesync.errors import DatabaseError

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

ADD_USER = """-- type: none
create procedure add_user(in p_name varchar(80))
modifies sql data
begin
  insert into users(name) values (p_name);
end
"""

COUNT_USERS = """create function count_users() returns int
reads sql data
begin
  return (select count(*) from users where name <> @LABEL@);
end
"""


def normalize(text: str) -> str:
    return " ".join(ANSI_RE.sub("", text).split())


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr("routinesync.cli.console", Console(width=400))


@pytest.fixture
def project(tmp_path, monkeypatch, fake_db):
    source_dir = tmp_path / "psql"
    source_dir.mkdir()
    (source_dir / "add_user.psql").write_text(ADD_USER)
    (source_dir / "count_users.psql").write_text(COUNT_USERS)
    config_file = tmp_path / "routinesync.json"
    config_file.write_text(
        json.dumps(
            {
                "database": {"database": "app"},
                "wrapper": {"metadata": "etc/routines.json"},
                "loader": {
                    "source_directory": "psql",
                    "sql_mode": "STRICT_ALL_TABLES",
                    "constants": {"LABEL": "guest"},
                },
            }
        )
    )
    monkeypatch.setattr("routinesync.api.connect", lambda settings, *, character_set: fake_db)
    return config_file


def test_version_flag():
    result = CliRunner().invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"routinesync v{__version__}" in result.stdout


def test_load_full_directory(project, fake_db):
    runner = CliRunner()

    result = runner.invoke(app, ["load", "-c", str(project)])

    output = normalize(result.stdout)
    assert result.exit_code == 0, output
    assert "SQL mode: STRICT_ALL_TABLES" in output
    assert "Loaded procedure add_user" in output
    assert "Loaded function count_users" in output
    assert "2 loaded, 0 unchanged, 0 dropped, 0 errors." in output
    assert "'guest'" in fake_db.routines["count_users"]["sql"]
    assert fake_db.closed is True

    metadata = json.loads((project.parent / "etc" / "routines.json").read_text())
    assert sorted(metadata) == ["add_user", "count_users"]

    again = runner.invoke(app, ["load", "-c", str(project)])
    assert again.exit_code == 0
    assert "0 loaded, 2 unchanged, 0 dropped, 0 errors." in normalize(again.stdout)


def test_load_listed_files_only(project, fake_db):
    fake_db.add_routine("legacy")
    add_user = project.parent / "psql" / "add_user.psql"

    result = CliRunner().invoke(app, ["load", "-c", str(project), str(add_user)])

    output = normalize(result.stdout)
    assert result.exit_code == 0, output
    assert "Loading 1 stored routine file..." in output
    assert "1 loaded, 0 unchanged, 0 dropped, 0 errors." in output
    assert "legacy" in fake_db.routines
    assert "count_users" not in fake_db.routines


def test_load_reports_failures_with_exit_code(project, fake_db):
    broken = project.parent / "psql" / "broken_one.psql"
    broken.write_text("create procedure broken_one() begin end")

    result = CliRunner().invoke(app, ["load", "-c", str(project)])

    output = normalize(result.stdout)
    assert result.exit_code == 1
    assert "2 loaded, 0 unchanged, 0 dropped, 1 error." in output
    assert "broken_one.psql" in output
    assert "designation type" in output


def test_load_missing_config(tmp_path):
    result = CliRunner().invoke(app, ["load", "-c", str(tmp_path / "absent.json")])
    assert result.exit_code == 1
    assert "Configuration file not found" in normalize(result.stdout)


def test_load_connection_failure(project, monkeypatch):
    def refuse(settings, *, character_set):
        raise DatabaseError("Unable to connect to localhost:3306/app: refused", code=2003)

    monkeypatch.setattr("routinesync.api.connect", refuse)

    result = CliRunner().invoke(app, ["load", "-c", str(project)])

    assert result.exit_code == 1
    assert "MySQL error 2003" in normalize(result.stdout)


def test_load_metadata_write_failure_asks_for_rerun(project, fake_db, monkeypatch):
    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("routinesync.services.metadata_service.os.replace", broken_replace)

    result = CliRunner().invoke(app, ["load", "-c", str(project)])

    output = normalize(result.stdout)
    assert result.exit_code == 1
    assert "Loaded procedure add_user" in output
    assert "Unable to write metadata file" in output
    assert "Run the loader again" in output


def test_show_metadata(project):
    runner = CliRunner()
    empty = runner.invoke(app, ["show", "-c", str(project)])
    assert empty.exit_code == 0
    assert "No stored routine metadata found" in normalize(empty.stdout)

    runner.invoke(app, ["load", "-c", str(project)])
    result = runner.invoke(app, ["show", "-c", str(project)])

    output = normalize(result.stdout)
    assert result.exit_code == 0
    assert "add_user" in output
    assert "count_users" in output
