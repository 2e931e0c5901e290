"""Tests for src.youtube.runner orchestration and CLI behaviour.

Run with coverage:
    pytest tests/test_youtube_runner.py --maxfail=1 -v --cov=src.youtube.runner --cov-report=term-missing
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from src.engine import http_client
from src.engine.errors import InvalidInputError
from src.engine.models import AggregatedEntity, AggregationResult, FailureReport
from src.youtube import runner

A, B, C = "AAAAAAAAAAA", "BBBBBBBBBBB", "CCCCCCCCCCC"


def _resp(status=200, payload=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {}
    resp.json.return_value = payload if payload is not None else {}
    resp.text = str(payload)
    return resp


def _session(playlists, missing=(), comment_status=None, limited=()):
    """Fake YouTube API: playlists map to member IDs, every other video exists with no comments.

    `comment_status` maps video IDs to an error status for commentThreads;
    videos in `limited` answer 429 to every request.
    """
    session = MagicMock()
    session.video_calls = []
    session.limited_calls = 0
    comment_status = comment_status or {}

    def request(method, url, **kwargs):
        resource = url.rsplit("/", 1)[-1]
        params = kwargs.get("params") or {}
        if (params.get("id") or params.get("videoId")) in limited:
            session.limited_calls += 1
            return _resp(429)
        if resource == "playlistItems":
            members = playlists[params["playlistId"]]
            if isinstance(members, int):
                return _resp(members, {"error": {"message": "playlist broken"}})
            return _resp(200, {"items": [{"snippet": {"resourceId": {"videoId": v}}} for v in members]})
        if resource == "videos":
            session.video_calls.append(params["id"])
            if params["id"] in missing:
                return _resp(200, {"items": []})
            return _resp(200, {"items": [{"snippet": {"title": f"title {params['id']}"}}]})
        if resource == "commentThreads" and params["videoId"] in comment_status:
            return _resp(comment_status[params["videoId"]], {"error": {"message": "backend"}})
        return _resp(200, {"items": []})

    session.request.side_effect = request
    return session


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(http_client, "sleep_for_rate_limit", lambda sec, event=None: None)


def test_run_orders_direct_then_playlist_and_fetches_once():
    session = _session({"PL1": [B, C]})
    result = runner.run("key", [A, B], ["PL1"], session=session, max_workers=4)
    assert [e.id for e in result.entities] == [A, B, C]
    assert sorted(session.video_calls) == [A, B, C]
    assert result.failures == []


def test_run_survives_missing_video():
    session = _session({"PL1": [A, C]}, missing={C})
    result = runner.run("key", [A, B], ["PL1"], session=session)
    assert [e.id for e in result.entities] == [A, B]
    assert [(f.scope, f.source_id) for f in result.failures] == [("entity", C)]


def test_run_reports_broken_playlist_as_container_failure():
    session = _session({"PL1": 404, "PL2": [C]})
    result = runner.run("key", [A], ["PL1", "PL2"], session=session)
    assert [e.id for e in result.entities] == [A, C]
    assert result.failures[0].scope == "container"
    assert result.failures[0].source_id == "PL1"


def test_run_drops_video_whose_comment_fetch_is_rejected():
    session = _session({}, comment_status={C: 500})
    result = runner.run("key", [A, B, C], [], session=session, max_workers=4)
    assert [e.id for e in result.entities] == [A, B]
    assert [(f.scope, f.source_id) for f in result.failures] == [("entity", C)]
    assert "HTTP 500" in result.failures[0].reason


def test_run_rate_limited_video_does_not_hold_back_siblings():
    session = _session({"PL1": [C]}, limited={B})
    result = runner.run("key", [A, B], ["PL1"], session=session, max_workers=4)
    assert [e.id for e in result.entities] == [A, C]
    assert [(f.scope, f.source_id) for f in result.failures] == [("entity", B)]
    assert result.failures[0].reason == "rate limited after 5 retries"
    assert session.limited_calls == 6


def test_run_rejects_bad_ids_before_fetching():
    session = _session({})
    with pytest.raises(InvalidInputError):
        runner.run("key", ["nope"], [], session=session)
    session.request.assert_not_called()


def test_load_input_file(tmp_path):
    path = tmp_path / "input.json"
    path.write_text(json.dumps({"videos": [A], "playlists": ["PL1"]}), encoding="utf-8")
    assert runner.load_input_file(str(path)) == ([A], ["PL1"])
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(InvalidInputError):
        runner.load_input_file(str(path))


def test_main_requires_api_key(monkeypatch, capsys):
    monkeypatch.setattr(runner, "resolve_credential", lambda *args, **kwargs: None)
    assert runner.main(["-v", A]) == 1
    assert "API key is required" in capsys.readouterr().out


def test_main_rejects_invalid_ids(capsys):
    assert runner.main(["-k", "key", "-v", "bad"]) == 2
    assert "[error] invalid video IDs" in capsys.readouterr().out


def test_main_writes_output(tmp_path, capsys):
    entity = AggregatedEntity(id=A, kind="video", fields={"title": "T", "uploadDate": None, "url": "u"})
    result = AggregationResult(entities=[entity], failures=[FailureReport("entity", B, "HTTP 404")])
    out = tmp_path / "out" / "comments.json"
    with patch.object(runner, "run", return_value=result) as mock_run:
        assert runner.main(["-k", "key", "-v", A, B, "-o", str(out)]) == 0
    mock_run.assert_called_once_with("key", [A, B], [])
    assert json.loads(out.read_text(encoding="utf-8"))[0]["id"] == A
    text = capsys.readouterr().out
    assert "[warn] entity " + B in text
    assert "1 succeeded, 1 failed" in text


def test_main_returns_one_when_nothing_processed(capsys):
    with patch.object(runner, "run", return_value=AggregationResult()):
        assert runner.main(["-k", "key", "-v", A]) == 1
    assert "No videos processed" in capsys.readouterr().out


def test_main_handles_interrupt():
    with patch.object(runner, "run", side_effect=KeyboardInterrupt):
        assert runner.main(["-k", "key", "-v", A]) == 130


def test_main_reports_missing_input_file(tmp_path, capsys):
    assert runner.main(["-k", "key", "-f", str(tmp_path / "absent.json")]) == 2
    assert "[error] cannot read input file" in capsys.readouterr().out


def test_main_reports_invalid_json_input_file(tmp_path, capsys):
    path = tmp_path / "input.json"
    path.write_text("{not json", encoding="utf-8")
    assert runner.main(["-k", "key", "-f", str(path)]) == 2
    assert "[error] cannot read input file" in capsys.readouterr().out
