import json

import pytest

import gl_explorer
from tests.fakes import FakeGitLab, pipeline_scenario


def test_groups_text(capsys):
    gl = FakeGitLab()
    gl.groups[5] = {"id": 5, "name": "acme", "full_path": "acme"}
    gl.group_projects[5] = [{"id": 10, "name": "app"}]
    gl.branches[10] = ["main"]

    assert gl_explorer.main(["groups", "-g", "5"], client=gl) == 0

    out = capsys.readouterr().out
    assert "Group: acme (acme)" in out
    assert "Project: app [10]" in out
    assert "main" in out


def test_pipeline_json(capsys):
    assert gl_explorer.main(["pipeline", "-p", "10", "-r", "main", "--json"], client=pipeline_scenario()) == 0

    data = json.loads(capsys.readouterr().out)
    assert data["id"] == 100
    assert data["bridges"][0]["downstream_jobs"][0]["name"] == "deploy"


def test_pipeline_url_text(capsys):
    gl_explorer.main(["pipeline-url", "-p", "10", "-r", "main"], client=pipeline_scenario())

    assert "URL: https://gitlab.example.com/acme/app/-/pipelines/100" in capsys.readouterr().out


def test_unknown_job_action_exits_1(capsys):
    gl = FakeGitLab()

    assert gl_explorer.main(["job", "-p", "10", "-j", "3", "-a", "deploy"], client=gl) == 1
    assert "unknown action" in capsys.readouterr().err
    assert gl.calls == []


def test_missing_option_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        gl_explorer.main(["pipeline", "-p", "10"], client=FakeGitLab())
    assert excinfo.value.code == 2


def test_missing_token_is_usage_error(monkeypatch):
    monkeypatch.delenv("GITLAB_TOKEN", raising=False)
    with pytest.raises(SystemExit):
        gl_explorer.main(["tags", "-p", "10"])


def test_tag_create_and_delete(capsys):
    gl = FakeGitLab()

    gl_explorer.main(["tag-create", "-p", "10", "-n", "v2", "-r", "main"], client=gl)
    gl_explorer.main(["tag-delete", "-p", "10", "-n", "v2"], client=gl)

    out = capsys.readouterr().out
    assert "Created tag v2" in out
    assert "Deleted tag v2" in out
    assert gl.tags[10] == []


def test_client_is_closed_after_command():
    gl = pipeline_scenario()

    gl_explorer.main(["pipeline", "-p", "10", "-r", "main"], client=gl)

    assert gl.closed
