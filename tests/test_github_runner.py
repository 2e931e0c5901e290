"""Tests for src.github.runner orchestration, file naming and CLI handling.

Run with coverage:
    pytest tests/test_github_runner.py --maxfail=1 -v --cov=src.github.runner --cov-report=term-missing
"""

import json
import re
from unittest.mock import MagicMock, patch

import pytest

from src.engine import http_client
from src.engine.errors import InvalidInputError
from src.engine.models import AggregatedEntity, AggregationResult
from src.github import runner


def _resp(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {}
    resp.json.return_value = payload if payload is not None else {}
    resp.text = str(payload)
    return resp


def _conn(nodes):
    return {"nodes": nodes, "pageInfo": {"hasNextPage": False, "endCursor": None}}


def _issue(issue_id):
    return {"id": issue_id, "title": issue_id, "url": "u", "comments": _conn([])}


def _session(repo_issues, repo_discussions=None):
    session = MagicMock()
    session.operations = []

    def request(method, url, **kwargs):
        payload = kwargs["json"]
        name = re.search(r"query (\w+)", payload["query"]).group(1)
        variables = payload["variables"]
        session.operations.append(name)
        repo = f"{variables.get('owner')}/{variables.get('name')}"
        if name == "Issues":
            if repo not in repo_issues:
                return _resp(200, {"errors": [{"message": "Could not resolve to a Repository"}]})
            return _resp(200, {"data": {"repository": {"issues": _conn([_issue(i) for i in repo_issues[repo]])}}})
        if name == "Discussions":
            nodes = [{"id": d, "title": d, "url": "u", "comments": _conn([])} for d in (repo_discussions or {}).get(repo, [])]
            return _resp(200, {"data": {"repository": {"discussions": _conn(nodes)}}})
        if name == "IssueNode":
            return _resp(200, {"data": {"node": {"__typename": "Issue", **_issue(variables["id"])}}})
        raise AssertionError(f"unexpected operation {name}")

    session.request.side_effect = request
    return session


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(http_client, "sleep_for_rate_limit", lambda sec, event=None: None)


def test_run_orders_direct_issues_first_and_dedupes():
    session = _session({"o/r": ["I2", "I3"]})
    issues, discussions = runner.run("tok", ["o/r"], issue_ids=["I1", "I2"], labels=["bug"], session=session)
    assert [e.id for e in issues.entities] == ["I1", "I2", "I3"]
    assert discussions is None
    # I2 is either seeded from the listing or looked up by node ID, once.
    assert session.operations.count("IssueNode") in (1, 2)


def test_run_includes_discussions_without_labels():
    session = _session({"o/r": ["I1"]}, {"o/r": ["D1", "D2"]})
    issues, discussions = runner.run("tok", ["o/r"], session=session)
    assert [e.id for e in issues.entities] == ["I1"]
    assert [e.id for e in discussions.entities] == ["D1", "D2"]


def test_run_explicit_discussion_flag_overrides_default():
    session = _session({"o/r": []}, {"o/r": ["D1"]})
    _, discussions = runner.run("tok", ["o/r"], labels=["bug"], include_discussions=True, session=session)
    assert [e.id for e in discussions.entities] == ["D1"]
    _, discussions = runner.run("tok", ["o/r"], include_discussions=False, session=session)
    assert discussions is None


def test_run_unknown_repo_is_a_container_failure_only():
    session = _session({"o/r": ["I1"]})
    issues, _ = runner.run("tok", ["o/missing", "o/r"], labels=["x"], session=session)
    assert [e.id for e in issues.entities] == ["I1"]
    assert [(f.scope, f.source_id) for f in issues.failures] == [("container", "o/missing")]


def test_run_validates_inputs():
    with pytest.raises(InvalidInputError):
        runner.run("tok", ["bad"], session=MagicMock())
    with pytest.raises(InvalidInputError):
        runner.run("tok", [], session=MagicMock())


def test_filenames():
    assert runner.issues_filename(["o/r"], []) == "issues_o_r_all_output.json"
    assert runner.issues_filename(["o/r", "a/b"], ["bug", "ui"]) == "issues_o_r_a_b_bug_ui_output.json"
    assert runner.discussions_filename([]) == "discussions_direct_output.json"


def test_arg_parser_collects_lists():
    args = runner.build_arg_parser().parse_args(["-r", "o/r", "-r", "a/b", "-l", "bug", "ui", "--no-include-discussions"])
    assert args.repository == ["o/r", "a/b"]
    assert args.labels == ["bug", "ui"]
    assert args.include_discussions is False


def test_main_requires_token(monkeypatch, capsys):
    monkeypatch.setattr(runner, "resolve_credential", lambda *args, **kwargs: None)
    assert runner.main(["-r", "o/r"]) == 1
    assert "token is required" in capsys.readouterr().out


def test_main_invalid_repository(capsys):
    assert runner.main(["-t", "tok", "-r", "nope"]) == 2
    assert "[error] Invalid repository format" in capsys.readouterr().out


def test_main_writes_both_files(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    issue = AggregatedEntity(id="I1", kind="issue", fields={"title": "t"})
    discussion = AggregatedEntity(id="D1", kind="discussion", fields={"title": "d", "answerId": None, "url": "u"})
    results = (AggregationResult(entities=[issue]), AggregationResult(entities=[discussion]))
    with patch.object(runner, "run", return_value=results) as mock_run:
        assert runner.main(["-t", "tok", "-r", "o/r"]) == 0
    assert mock_run.call_args.kwargs["include_discussions"] is True
    issues = json.loads((tmp_path / "issues_o_r_all_output.json").read_text(encoding="utf-8"))
    discussions = json.loads((tmp_path / "discussions_o_r_output.json").read_text(encoding="utf-8"))
    assert issues == [{"id": "I1", "title": "t", "comments": []}]
    assert discussions[0]["id"] == "D1"
    assert "Processed 1 issues" in capsys.readouterr().out


def test_main_handles_interrupt():
    with patch.object(runner, "run", side_effect=KeyboardInterrupt):
        assert runner.main(["-t", "tok", "-r", "o/r"]) == 130
