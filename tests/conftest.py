"""Shared pytest fixtures for the codestream test suite.

Provides reusable fixtures for:
- Recorded model responses (single file, multi-file, patch, plan, batch)
- Pre-session snapshots
- Mocked Ollama streaming transports
"""

from __future__ import annotations

import json
import textwrap
from collections.abc import Callable

import httpx
import pytest


# ---------------------------------------------------------------------------
# Recorded responses
# ---------------------------------------------------------------------------

@pytest.fixture
def single_file_response() -> str:
    """A response with prose, one marker and one fenced HTML file."""
    return textwrap.dedent("""\
        Sure! Here is your landing page.

        <!-- FILENAME: frontend/index.html -->
        Below is the complete file:
        ```html
        <!DOCTYPE html>
        <html>
        <body><h1>Hello</h1></body>
        </html>
        ```

        Let me know what to build next.
    """)


@pytest.fixture
def multi_file_response() -> str:
    """A response with three markers in the three accepted comment styles."""
    return textwrap.dedent("""\
        <!-- FILENAME: frontend/index.html -->
        ```html
        <html><body>App</body></html>
        ```

        // FILENAME: backend/server.js
        ```javascript
        const express = require('express');
        const app = express();
        app.listen(3000);
        ```

        # FILENAME: backend/.env.example
        ```
        PORT=3000
        ```
    """)


@pytest.fixture
def snapshot() -> dict[str, str]:
    """Project files as they were before the session."""
    return {
        "backend/server.js": (
            "const express = require('express');\n"
            "const app = express();\n"
            "app.listen(3000);\n"
        ),
        "frontend/index.html": "<html><body>Old</body></html>",
    }


@pytest.fixture
def patch_response() -> str:
    """A response patching ``backend/server.js`` with two operations."""
    return textwrap.dedent("""\
        <!-- FILENAME: backend/server.js -->
        ```javascript
        <<<< SEARCH
        const app = express();
        ====
        const app = express();
        app.use(express.json());
        >>>> REPLACE
        <<<< SEARCH
        app.listen(3000);
        ====
        app.listen(process.env.PORT || 3000);
        >>>> REPLACE
        ```
    """)


@pytest.fixture
def plan_payload() -> dict:
    return {
        "title": "Task Manager",
        "description": "A small task tracking app",
        "structure": {
            "frontend": ["frontend/index.html"],
            "backend": ["backend/server.js", "backend/routes/taskRoutes.js"],
        },
    }


@pytest.fixture
def plan_response(plan_payload: dict) -> str:
    """A planning-mode response holding a json fence."""
    return (
        "Here is the plan for your system:\n\n"
        "```json\n"
        f"{json.dumps(plan_payload, indent=2)}\n"
        "```\n\n"
        "Approve it to start.\n"
    )


@pytest.fixture
def batch_response() -> str:
    """A batch-mode response ending with a continuation marker."""
    return textwrap.dedent("""\
        <!-- FILENAME: backend/server.js -->
        ```javascript
        require('dotenv').config();
        ```
        <!-- NEXT: backend/config/db.js -->
    """)


# ---------------------------------------------------------------------------
# Ollama transport mocks
# ---------------------------------------------------------------------------

def _ndjson(chunks: list[str]) -> bytes:
    lines = [json.dumps({"message": {"role": "assistant", "content": c}, "done": False}) for c in chunks]
    lines.append(json.dumps({"message": {"role": "assistant", "content": ""}, "done": True}))
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def ollama_stream_transport() -> Callable[[list[str]], httpx.MockTransport]:
    """Factory for a transport that streams *chunks* from ``/api/chat``.

    Every request is recorded on the returned transport's ``requests`` list.
    """
    def _make(chunks: list[str]) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=_ndjson(chunks))

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return _make


@pytest.fixture
def ollama_status_transport() -> Callable[[int, str], httpx.MockTransport]:
    """Factory for a transport that answers every request with *status*."""
    def _make(status: int, body: str = "") -> httpx.MockTransport:
        return httpx.MockTransport(lambda request: httpx.Response(status, text=body))

    return _make
