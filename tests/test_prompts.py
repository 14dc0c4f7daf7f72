"""Unit tests for prompt construction (codestream.prompts)."""

from __future__ import annotations

import pytest

from codestream.config import PromptConfig
from codestream.ollama_client import ChatMessage
from codestream.prompts import build_context_prompt, build_messages, build_system_instruction


class TestSystemInstruction:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("persona", "needle"),
        [
            ("frontend", "frontend expert"),
            ("backend", "backend architect"),
            ("fullstack", "fullstack lead"),
        ],
    )
    def test_persona_selected(self, persona, needle):
        assert needle in build_system_instruction(persona, batch_mode=False)

    @pytest.mark.unit
    def test_format_rules_always_present(self):
        text = build_system_instruction("frontend", batch_mode=False)
        assert "<!-- FILENAME: folder/file.ext -->" in text
        assert "<<<< SEARCH" in text
        assert ">>>> REPLACE" in text

    @pytest.mark.unit
    def test_batch_mode_mentions_next_marker(self):
        assert "<!-- NEXT:" in build_system_instruction("backend", batch_mode=True)
        assert "<!-- NEXT:" not in build_system_instruction("backend", batch_mode=False)


class TestContextPrompt:
    @pytest.mark.unit
    def test_lists_files_and_active_content(self):
        files = {"index.html": "<p>hi</p>", "app.js": ""}
        prompt = build_context_prompt("Add a footer", files, active_file="index.html")
        assert "Project files: index.html, app.js." in prompt
        assert "<p>hi</p>" in prompt
        assert prompt.endswith("Add a footer")

    @pytest.mark.unit
    def test_empty_project(self):
        prompt = build_context_prompt("Start", {}, active_file="index.html")
        assert "Project files: none." in prompt
        assert "(empty or new file)" in prompt


class TestBuildMessages:
    @pytest.mark.unit
    def test_structure(self):
        messages = build_messages("Build it", {})
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[-1].content.endswith("Build it")

    @pytest.mark.unit
    def test_history_window(self):
        history = [ChatMessage(role="user", content=f"m{i}") for i in range(12)]
        messages = build_messages("next", {}, history=history, config=PromptConfig(history_window=3))
        assert [m.content for m in messages[1:-1]] == ["m9", "m10", "m11"]

    @pytest.mark.unit
    def test_zero_history_window(self):
        history = [ChatMessage(role="assistant", content="old")]
        messages = build_messages("next", {}, history=history, config=PromptConfig(history_window=0))
        assert len(messages) == 2
