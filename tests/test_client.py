"""Tests for the API client, board session and CLI (server mocked)."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_record
from pipeline_client import cli, http, tool
from pipeline_client.session import BoardSession
from pipeline_server.errors import PersistenceFailure
from pipeline_server.models import PipelineSettings


def _response(status_code: int, body=None, text: str = ""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(response=resp)
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


class TestHttp:
    def test_ok(self):
        with patch("requests.get", return_value=_response(200, {"status": "ok"})):
            assert http.get("/api/status") == {"status": "ok"}

    def test_server_envelope_keeps_code(self):
        body = {"status": "error", "error": "Stage custom_1 not found", "code": "STAGE_NOT_FOUND"}
        with patch("requests.patch", return_value=_response(404, body)):
            result = http.patch("/api/settings/u/stages/custom_1", error_code="OTHER", json={})
        assert result == body

    def test_plain_http_error(self):
        resp = _response(500, ValueError("no json"), text="Internal Server Error")
        with patch("requests.get", return_value=resp):
            result = http.get("/api/status", error_code="SERVER_ERROR")
        assert result["status"] == "error"
        assert result["code"] == "SERVER_ERROR"
        assert "500" in result["error"]

    def test_connection_error_never_raises(self):
        with patch("requests.put", side_effect=requests.ConnectionError("refused")):
            result = http.put("/api/applications/app_1/status", json={})
        assert result == {"status": "error", "error": "refused"}


class TestTool:
    def test_status(self):
        with patch("pipeline_client.tool.http.get", return_value={"status": "ok", "applications": 4}):
            assert tool.status() == "OK | applications: 4"

    def test_status_error(self):
        with patch("pipeline_client.tool.http.get", return_value={"status": "error", "error": "refused", "code": "SERVER_ERROR"}):
            assert tool.status() == "ERROR: SERVER_ERROR: refused"

    def test_update_status_expands_short_id(self):
        result = {"status": "ok", "changed": True, "application": {"id": "app_abc", "status": "offer"}}
        with patch("pipeline_client.tool.http.put", return_value=result) as put:
            assert tool.update_status("abc", "offer", user_id="r1") == "Moved: abc -> offer"
        assert put.call_args.args[0] == "/api/applications/app_abc/status"
        assert put.call_args.kwargs["json"] == {"status": "offer", "user_id": "r1"}

    def test_reject_sends_user(self):
        result = {"status": "ok", "changed": True, "application": {"id": "app_abc", "status": "rejected"}}
        with patch("pipeline_client.tool.http.post", return_value=result) as post:
            assert tool.reject("abc", "r1") == "Rejected: abc -> rejected"
        assert post.call_args.kwargs["params"] == {"user_id": "r1"}

    def test_update_status_unchanged(self):
        result = {"status": "ok", "changed": False, "application": {"id": "app_abc", "status": "offer"}}
        with patch("pipeline_client.tool.http.put", return_value=result):
            assert tool.update_status("app_abc", "offer", user_id="r1") == "Unchanged: abc in offer"

    def test_board_terse(self):
        board = {"columns": [
            {"name": "New", "count": 1, "cards": [{
                "id": "app_1", "name": "Ada", "match_score": 90, "rating": None,
                "applied": "Today", "quick_actions": ["advance", "reject"],
            }]},
            {"name": "Offer", "count": 0, "cards": []},
        ]}
        with patch("pipeline_client.tool.http.get", return_value=board):
            out = tool.get_board("r1")
        assert out.splitlines() == [
            "--- New (1) ---",
            "1|Ada|90|-|Today|advance,reject",
            "--- Offer (0) ---",
        ]

    def test_update_settings_sends_only_given_fields(self):
        settings = {"background_theme": "gradient", "column_transparency": 70, "custom_stages": [{}] * 8}
        with patch("pipeline_client.tool.http.patch", return_value={"status": "ok", "settings": settings}) as p:
            out = tool.update_settings("r1", background_theme="gradient")
        assert p.call_args.kwargs["json"] == {"background_theme": "gradient"}
        assert out == "theme: gradient | transparency: 70 | stages: 8"

    def test_remove_stage(self):
        with patch("pipeline_client.tool.http.delete", return_value={"status": "ok", "removed": "custom_1", "moved": 3}):
            assert tool.remove_stage("r1", "custom_1") == "Removed: custom_1 (3 moved)"


class TestBoardSession:
    def test_failed_update_reverts(self):
        session = BoardSession("r1", PipelineSettings(), [make_record("app_1", "new")])
        error = {"status": "error", "error": "Server returned 503", "code": "PERSISTENCE_FAILED"}
        with patch("pipeline_client.session.tool.update_status", return_value=error):
            with pytest.raises(PersistenceFailure):
                asyncio.run(session.controller.move("app_1", "offer"))
        assert session.controller.get("app_1").status == "new"

    def test_successful_update(self):
        session = BoardSession("r1", PipelineSettings(), [make_record("app_1", "new")])
        ok = {"status": "ok", "changed": True, "application": {}}
        with patch("pipeline_client.session.tool.update_status", return_value=ok) as update:
            asyncio.run(session.controller.move("app_1", "offer"))
        update.assert_called_once_with("app_1", "offer", user_id="r1", full=True)
        assert session.controller.get("app_1").status == "offer"

    def test_drop_uses_session_gesture(self):
        session = BoardSession("r1", PipelineSettings(), [make_record("app_1", "new")])
        payload = session.gesture.start("app_1", "new")
        with patch("pipeline_client.session.tool.update_status", return_value={"status": "ok"}):
            result = asyncio.run(session.drop(payload, "screening"))
        assert result.to_stage == "screening"

    def test_apply_snapshot_message(self):
        session = BoardSession("r1", PipelineSettings(), [])
        record = make_record("app_9", "offer")
        session.apply_snapshot({"event": "records_updated", "data": {"applications": [record.model_dump(mode="json")]}})
        assert [r.id for r in session.controller.records()] == ["app_9"]

    def test_failed_settings_save_keeps_local_change(self):
        session = BoardSession("r1", PipelineSettings(), [])
        error = {"status": "error", "error": "Server returned 503", "code": "PERSISTENCE_FAILED"}
        with patch("pipeline_client.session.tool.update_settings", return_value=error):
            with pytest.raises(PersistenceFailure):
                asyncio.run(session.update_settings(column_transparency=40))
        assert session.settings.column_transparency == 40

    def test_settings_save_adopts_server_result(self):
        session = BoardSession("r1", PipelineSettings(), [])
        saved = PipelineSettings(background_theme="gradient", column_transparency=70).model_dump(mode="json")
        with patch("pipeline_client.session.tool.update_settings", return_value={"status": "ok", "settings": saved}) as update:
            settings = asyncio.run(session.update_settings(background_theme="gradient"))
        update.assert_called_once_with("r1", full=True, background_theme="gradient")
        assert settings.column_transparency == 70

    def test_connect(self):
        settings = PipelineSettings().model_dump(mode="json")
        records = [make_record("app_1", "new").model_dump(mode="json")]
        with patch("pipeline_client.session.tool.get_settings", return_value={"status": "ok", "settings": settings}), \
             patch("pipeline_client.session.tool.get_applications", return_value={"status": "ok", "applications": records}):
            session = BoardSession.connect("r1")
        assert len(session.stages()) == 8
        assert session.controller.get("app_1").status == "new"

    def test_connect_server_down(self):
        with patch("pipeline_client.session.tool.get_settings", return_value={"status": "error", "error": "refused"}):
            with pytest.raises(PersistenceFailure):
                BoardSession.connect("r1")


class TestCli:
    def test_help(self, capsys):
        with patch("sys.argv", ["pipe"]):
            cli.main()
        assert "Usage: pipe" in capsys.readouterr().out

    def test_board_requires_user(self, capsys, monkeypatch):
        monkeypatch.delenv("PIPELINE_USER", raising=False)
        with patch("sys.argv", ["pipe", "board"]):
            cli.main()
        assert "no recruiter id" in capsys.readouterr().out

    def test_move(self, capsys):
        with patch("sys.argv", ["pipe", "move", "abc", "offer", "--user=r1", "--note=Signed"]), \
             patch("pipeline_client.cli.tool.update_status", return_value="Moved: abc -> offer") as update:
            cli.main()
        update.assert_called_once_with("abc", "offer", user_id="r1", note="Signed")
        assert "Moved: abc -> offer" in capsys.readouterr().out

    def test_settings_set_transparency(self, capsys):
        with patch("sys.argv", ["pipe", "settings", "set", "transparency", "40", "--user=r1"]), \
             patch("pipeline_client.cli.tool.update_settings", return_value="ok") as update:
            cli.main()
        update.assert_called_once_with("r1", column_transparency=40)

    def test_stages_rename(self, capsys):
        with patch("sys.argv", ["pipe", "stages", "rename", "screening", "Resume", "Review", "--user=r1"]), \
             patch("pipeline_client.cli.tool.update_stage", return_value="ok") as update:
            cli.main()
        update.assert_called_once_with("r1", "screening", name="Resume Review")

    def test_move_requires_user(self, capsys, monkeypatch):
        monkeypatch.delenv("PIPELINE_USER", raising=False)
        with patch("sys.argv", ["pipe", "move", "abc", "offer"]), \
             patch("pipeline_client.cli.tool.update_status") as update:
            cli.main()
        update.assert_not_called()
        assert "no recruiter id" in capsys.readouterr().out

    def test_advance_uses_env_user(self, capsys, monkeypatch):
        monkeypatch.setenv("PIPELINE_USER", "r2")
        with patch("sys.argv", ["pipe", "advance", "abc"]), \
             patch("pipeline_client.cli.tool.advance", return_value="Advanced: abc -> interview") as advance:
            cli.main()
        advance.assert_called_once_with("abc", user_id="r2")
