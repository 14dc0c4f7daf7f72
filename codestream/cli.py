"""codestream command-line interface.

Two commands:

``replay``
    Feed a recorded model response through a stream session in fixed-size
    chunks and report the artifacts, patches and plan it produced.
``generate``
    Stream a live generation from a local Ollama server through a session.

Usage::

    python -m codestream.cli replay response.txt --chunk-size 16
    python -m codestream.cli replay response.txt --snapshot-json files.json
    python -m codestream.cli generate "Build a todo app" --persona frontend
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from collections.abc import AsyncIterator
from pathlib import Path

from rich.markup import escape
from rich.panel import Panel

from .config import Config
from .driver import SessionResult, StreamSession
from .ollama_client import OllamaClient, OllamaConnectionError, OllamaError, QuotaExceededError
from .prompts import build_messages
from .utils import (
    console,
    format_duration,
    print_artifact_table,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def split_chunks(text: str, chunk_size: int) -> list[str]:
    """Split *text* into consecutive chunks of at most *chunk_size* characters."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]


async def _iterate(chunks: list[str]) -> AsyncIterator[str]:
    for chunk in chunks:
        yield chunk


def load_snapshot(path: Path | None) -> dict[str, str]:
    """Read a ``{path: content}`` JSON object, or return an empty snapshot."""
    if path is None:
        return {}
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError(f"Snapshot file must hold a JSON object of strings: {path}")
    return data


def report_result(result: SessionResult, elapsed: float) -> None:
    """Print a finished session's outcome."""
    if result.plan is not None:
        plan = result.plan
        console.print(
            Panel(
                f"[bold]{escape(plan.title)}[/bold]\n{escape(plan.description)}\n\n"
                f"Frontend: {escape(', '.join(plan.structure.frontend)) or '-'}\n"
                f"Backend: {escape(', '.join(plan.structure.backend)) or '-'}",
                title="Build Plan",
                border_style="cyan",
            )
        )
        return

    if result.is_conversational:
        print_warning("No artifact markers found; the response is conversational.")
        console.print(result.text, markup=False)
        return

    notes: dict[str, str] = {}
    for path, patch in result.patches.items():
        notes[path] = f"patched {patch.applied}/{len(patch.outcomes)}"
    print_artifact_table(result.artifacts, notes=notes)

    for path, count in result.failed_patches.items():
        print_warning(f"{count} patch operation(s) for {path} could not be located")
    if result.plan_error:
        print_warning(f"Ignored json fence: {result.plan_error}")

    print_summary_table(
        {
            "Artifacts": len(result.artifacts),
            "Patched": len(result.patches),
            "Next artifact": result.next_artifact or "-",
            "Elapsed": format_duration(elapsed),
        },
        title="Session",
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_replay(
    text: str,
    snapshot: dict[str, str],
    chunk_size: int,
    config: Config,
) -> SessionResult:
    """Replay *text* through a fresh session in *chunk_size* pieces."""
    session = StreamSession(snapshot=snapshot, config=config.parser)
    seen: set[str] = set()

    def _on_update(artifacts: dict[str, str]) -> None:
        for path in artifacts:
            if path not in seen:
                seen.add(path)
                console.print(f"  [dim]Receiving {path}...[/dim]")

    return await session.consume(_iterate(split_chunks(text, chunk_size)), on_update=_on_update)


async def run_generate(
    request: str,
    snapshot: dict[str, str],
    config: Config,
    client: OllamaClient | None = None,
) -> SessionResult:
    """Stream one generation from Ollama through a fresh session.

    Raises:
        OllamaConnectionError: The server does not answer ``/api/tags``.
        OllamaError: The generation stream failed.
    """
    client = client or OllamaClient(base_url=config.ollama.url, timeout=config.ollama.timeout)
    if not await client.is_available():
        raise OllamaConnectionError(
            f"Ollama is not reachable at {client.base_url}. Is the server running?"
        )
    messages = build_messages(request, snapshot, config=config.prompt)
    session = StreamSession(snapshot=snapshot, config=config.parser)
    chunks = client.stream_chat(
        messages,
        model=config.ollama.model,
        temperature=config.ollama.temperature,
    )
    return await session.consume(chunks)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codestream",
        description="codestream -- streaming multi-artifact parser",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  codestream replay response.txt --chunk-size 16\n"
            "  codestream generate \"Build a landing page\" --persona frontend\n"
        ),
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config", default=None, help="Saved JSON settings to use instead of CODESTREAM_* variables"
    )
    common.add_argument("--save-config", default=None, help="Write the effective settings to this JSON file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    replay = subparsers.add_parser("replay", parents=[common], help="Replay a recorded response")
    replay.add_argument("response", help="Path to the recorded response text")
    replay.add_argument("--chunk-size", type=int, default=32, help="Characters per chunk (default: 32)")
    replay.add_argument("--snapshot-json", default=None, help="JSON object of pre-session file contents")

    generate = subparsers.add_parser("generate", parents=[common], help="Stream a live generation from Ollama")
    generate.add_argument("request", help="What to build or change")
    generate.add_argument("--persona", choices=["frontend", "backend", "fullstack"], default=None)
    generate.add_argument("--batch", action="store_true", help="Ask for several files chained with NEXT markers")
    generate.add_argument("--model", default=None, help="Ollama model tag")
    generate.add_argument("--snapshot-json", default=None, help="JSON object of pre-session file contents")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``codestream`` / ``python -m codestream.cli``."""
    args = build_parser().parse_args(argv)
    try:
        config = Config.load(Path(args.config)) if args.config else Config.from_env()
    except (OSError, ValueError) as exc:
        print_error(f"Error: invalid configuration: {escape(str(exc))}")
        return 1

    try:
        snapshot = load_snapshot(Path(args.snapshot_json) if args.snapshot_json else None)
    except (OSError, ValueError) as exc:
        print_error(f"Error: could not read snapshot: {escape(str(exc))}")
        return 1

    if args.command == "generate":
        if args.persona:
            config.prompt.persona = args.persona
        if args.batch:
            config.prompt.batch_mode = True
        if args.model:
            config.ollama.model = args.model
    if args.save_config:
        try:
            saved = config.save(Path(args.save_config))
        except OSError as exc:
            print_error(f"Error: could not write settings: {escape(str(exc))}")
            return 1
        console.print(f"  [dim]Settings written to {saved}[/dim]")

    start = time.monotonic()
    if args.command == "replay":
        response_path = Path(args.response)
        if not response_path.exists():
            print_error(f"Error: response file not found: {response_path}")
            return 1
        if args.chunk_size < 1:
            print_error(f"Error: --chunk-size must be positive, got {args.chunk_size}")
            return 1
        try:
            text = response_path.read_text(encoding="utf-8")
        except (OSError, ValueError) as exc:
            print_error(f"Error: could not read response file: {escape(str(exc))}")
            return 1
        print_header("Replay")
        result = asyncio.run(run_replay(text, snapshot, args.chunk_size, config))
    else:
        print_header("Generate")
        try:
            result = asyncio.run(run_generate(args.request, snapshot, config))
        except QuotaExceededError as exc:
            print_error(f"Quota exceeded, wait before retrying: {escape(str(exc))}")
            return 1
        except OllamaError as exc:
            print_error(f"Generation failed: {escape(str(exc))}")
            return 1

    report_result(result, time.monotonic() - start)
    print_success("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
