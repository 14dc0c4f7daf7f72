"""codestream configuration.

Typed configuration for the parser, the prompt builder and the Ollama
transport. All settings use Pydantic v2 models so they are validated at
construction time and can be serialised to/from JSON or read from
environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

Persona = Literal["frontend", "backend", "fullstack"]


class ParserConfig(BaseModel):
    """Knobs for artifact extraction and patch reconciliation."""

    html_extensions: tuple[str, ...] = Field(
        default=(".html", ".htm"),
        description="Extensions whose unfenced content is cut after the last </html>",
    )
    max_fuzzy_search_length: int = Field(
        default=20_000,
        ge=1,
        description="Search blocks longer than this skip whitespace-tolerant matching",
    )


class OllamaConfig(BaseModel):
    """Configuration for the local Ollama server."""

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5-coder:14b")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")
    temperature: float = Field(default=0.5, ge=0.0, le=2.0)


class PromptConfig(BaseModel):
    """How generation requests are framed."""

    persona: Persona = Field(default="fullstack")
    batch_mode: bool = Field(
        default=False, description="Ask for several files per response, chained with NEXT markers"
    )
    history_window: int = Field(
        default=8, ge=0, description="How many recent chat messages are sent with each request"
    )


class Config(BaseModel):
    """Global codestream configuration.

    Created once by the CLI (or by an embedding application) and passed to
    the session, the prompt builder and the Ollama client.
    """

    parser: ParserConfig = Field(default_factory=ParserConfig)
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    prompt: PromptConfig = Field(default_factory=PromptConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            CODESTREAM_OLLAMA_URL, CODESTREAM_OLLAMA_MODEL,
            CODESTREAM_OLLAMA_TIMEOUT, CODESTREAM_TEMPERATURE,
            CODESTREAM_PERSONA, CODESTREAM_BATCH_MODE,
            CODESTREAM_HISTORY_WINDOW, CODESTREAM_MAX_FUZZY_SEARCH_LENGTH.
        """
        ollama_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_OLLAMA_URL"):
            ollama_kwargs["url"] = os.environ["CODESTREAM_OLLAMA_URL"]
        if os.environ.get("CODESTREAM_OLLAMA_MODEL"):
            ollama_kwargs["model"] = os.environ["CODESTREAM_OLLAMA_MODEL"]
        if os.environ.get("CODESTREAM_OLLAMA_TIMEOUT"):
            ollama_kwargs["timeout"] = int(os.environ["CODESTREAM_OLLAMA_TIMEOUT"])
        if os.environ.get("CODESTREAM_TEMPERATURE"):
            ollama_kwargs["temperature"] = float(os.environ["CODESTREAM_TEMPERATURE"])

        prompt_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_PERSONA"):
            prompt_kwargs["persona"] = os.environ["CODESTREAM_PERSONA"]
        if os.environ.get("CODESTREAM_BATCH_MODE"):
            prompt_kwargs["batch_mode"] = os.environ["CODESTREAM_BATCH_MODE"].lower() in (
                "1", "true", "yes", "on",
            )
        if os.environ.get("CODESTREAM_HISTORY_WINDOW"):
            prompt_kwargs["history_window"] = int(os.environ["CODESTREAM_HISTORY_WINDOW"])

        parser_kwargs: dict[str, Any] = {}
        if os.environ.get("CODESTREAM_MAX_FUZZY_SEARCH_LENGTH"):
            parser_kwargs["max_fuzzy_search_length"] = int(
                os.environ["CODESTREAM_MAX_FUZZY_SEARCH_LENGTH"]
            )

        return cls(
            parser=ParserConfig(**parser_kwargs),
            ollama=OllamaConfig(**ollama_kwargs),
            prompt=PromptConfig(**prompt_kwargs),
        )
