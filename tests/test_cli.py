"""Tests for the command-line interface (codestream.cli)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from codestream import cli
from codestream.config import Config
from codestream.ollama_client import OllamaClient, OllamaConnectionError, QuotaExceededError


class TestSplitChunks:
    @pytest.mark.unit
    def test_split(self):
        assert cli.split_chunks("abcdefg", 3) == ["abc", "def", "g"]

    @pytest.mark.unit
    def test_rejects_zero(self):
        with pytest.raises(ValueError):
            cli.split_chunks("abc", 0)


class TestLoadSnapshot:
    @pytest.mark.unit
    def test_none(self):
        assert cli.load_snapshot(None) == {}

    @pytest.mark.unit
    def test_valid(self, tmp_path: Path, snapshot):
        path = tmp_path / "snap.json"
        path.write_text(json.dumps(snapshot), encoding="utf-8")
        assert cli.load_snapshot(path) == snapshot

    @pytest.mark.unit
    def test_invalid_shape(self, tmp_path: Path):
        path = tmp_path / "snap.json"
        path.write_text(json.dumps({"a": 1}), encoding="utf-8")
        with pytest.raises(ValueError):
            cli.load_snapshot(path)


class TestReplay:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_replay_applies_patch(self, patch_response, snapshot):
        result = await cli.run_replay(patch_response, snapshot, 4, Config())
        assert "app.use(express.json());" in result.artifacts["backend/server.js"]

    @pytest.mark.unit
    def test_main_replay(self, tmp_path: Path, multi_file_response):
        response = tmp_path / "response.txt"
        response.write_text(multi_file_response, encoding="utf-8")
        with cli.console.capture() as capture:
            code = cli.main(["replay", str(response), "--chunk-size", "9"])
        assert code == 0
        assert "backend/server.js" in capture.get()

    @pytest.mark.unit
    def test_main_replay_plan(self, tmp_path: Path, plan_response):
        response = tmp_path / "response.txt"
        response.write_text(plan_response, encoding="utf-8")
        with cli.console.capture() as capture:
            code = cli.main(["replay", str(response)])
        assert code == 0
        assert "Task Manager" in capture.get()

    @pytest.mark.unit
    def test_main_replay_missing_file(self, tmp_path: Path):
        with cli.console.capture():
            assert cli.main(["replay", str(tmp_path / "missing.txt")]) == 1

    @pytest.mark.unit
    def test_main_replay_bad_chunk_size(self, tmp_path: Path):
        response = tmp_path / "response.txt"
        response.write_text("hi", encoding="utf-8")
        with cli.console.capture():
            assert cli.main(["replay", str(response), "--chunk-size", "0"]) == 1


class TestGenerate:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_generate_streams_through_session(self, ollama_stream_transport):
        transport = ollama_stream_transport(["<!-- FILENAME: a.txt -->\n```\nhel", "lo\n```"])
        client = OllamaClient(transport=transport)
        result = await cli.run_generate("make a.txt", {}, Config(), client=client)
        assert result.artifacts == {"a.txt": "hello"}
        assert [r.url.path for r in transport.requests] == ["/api/tags", "/api/chat"]
        payload = json.loads(transport.requests[-1].content)
        assert payload["messages"][0]["role"] == "system"
        assert payload["messages"][-1]["content"].endswith("make a.txt")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_run_generate_requires_reachable_server(self, ollama_status_transport):
        client = OllamaClient(transport=ollama_status_transport(503, "down"))
        with pytest.raises(OllamaConnectionError, match="not reachable"):
            await cli.run_generate("make a.txt", {}, Config(), client=client)

    @pytest.mark.unit
    def test_main_generate_quota_error(self):
        async def _raise(*args, **kwargs):
            raise QuotaExceededError("HTTP 429")

        with patch.object(cli, "run_generate", side_effect=_raise):
            with cli.console.capture() as capture:
                code = cli.main(["generate", "build it"])
        assert code == 1
        assert "Quota exceeded" in capture.get()


class TestSettings:
    @pytest.mark.unit
    def test_invalid_environment_is_reported(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("CODESTREAM_PERSONA", "designer")
        response = tmp_path / "response.txt"
        response.write_text("hi", encoding="utf-8")
        with cli.console.capture() as capture:
            code = cli.main(["replay", str(response)])
        assert code == 1
        assert "invalid configuration" in capture.get()

    @pytest.mark.unit
    def test_non_utf8_response_is_reported(self, tmp_path: Path):
        response = tmp_path / "response.txt"
        response.write_bytes(b"\xff\xfe\x00bad")
        with cli.console.capture() as capture:
            code = cli.main(["replay", str(response)])
        assert code == 1
        assert "could not read response file" in capture.get()

    @pytest.mark.unit
    def test_save_then_load_settings(self, tmp_path: Path, multi_file_response):
        response = tmp_path / "response.txt"
        response.write_text(multi_file_response, encoding="utf-8")
        settings = tmp_path / "settings" / "codestream.json"

        with cli.console.capture():
            assert cli.main(["replay", str(response), "--save-config", str(settings)]) == 0
        assert Config.load(settings) == Config.from_env()

        with cli.console.capture() as capture:
            assert cli.main(["replay", str(response), "--config", str(settings)]) == 0
        assert "backend/server.js" in capture.get()

    @pytest.mark.unit
    def test_generate_overrides_are_saved(self, tmp_path: Path):
        async def _finish(*args, **kwargs):
            raise QuotaExceededError("HTTP 429")

        settings = tmp_path / "codestream.json"
        with patch.object(cli, "run_generate", side_effect=_finish):
            with cli.console.capture():
                cli.main(["generate", "x", "--persona", "backend", "--save-config", str(settings)])
        assert Config.load(settings).prompt.persona == "backend"

    @pytest.mark.unit
    def test_missing_config_file_is_reported(self, tmp_path: Path):
        with cli.console.capture() as capture:
            code = cli.main(["replay", "x.txt", "--config", str(tmp_path / "none.json")])
        assert code == 1
        assert "invalid configuration" in capture.get()
