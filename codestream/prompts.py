"""Prompt construction for generation requests.

Builds the persona system instruction, the batch/step mode instruction and
the per-request context prompt. The output format rules taught to the model
here are exactly the grammar the parser consumes: ``FILENAME:`` markers,
fenced content, ``<<<< SEARCH`` patch blocks, ``json`` plan fences and the
``<!-- NEXT: path -->`` continuation marker.
"""

from __future__ import annotations

import textwrap
from collections.abc import Mapping, Sequence

from .config import Persona, PromptConfig
from .ollama_client import ChatMessage

_OUTPUT_FORMAT_RULES = textwrap.dedent("""\
    OUTPUT FORMAT:
    Always put the file name (including its folder) on a marker line above a
    fenced code block:
    <!-- FILENAME: folder/file.ext -->
    ```language
    ...
    ```

    To change part of an existing file, emit patch blocks inside the fence
    instead of the whole file:
    <<<< SEARCH
    exact lines currently in the file
    ====
    replacement lines
    >>>> REPLACE
    """)

_FRONTEND_INSTRUCTION = textwrap.dedent("""\
    You are a frontend expert specialising in UI/UX, design systems and
    HTML/CSS/JavaScript.

    - Main stack: HTML5, Tailwind CSS (via CDN), vanilla JS or React if asked.
    - Save everything under `frontend/`.
    - Single-file rule: do not create separate .css or .js files. All CSS
      and JavaScript is embedded in the .html file.
    - Use placeholder images to bring the layout to life.
    """)

_BACKEND_INSTRUCTION = textwrap.dedent("""\
    You are a backend architect specialising in Node.js.

    - Stack: Node.js, Express, MySQL (mysql2 with promises), JWT + bcrypt,
      dotenv.
    - Every path is prefixed with `backend/`; keep the project modular:
      `backend/config/db.js`, `backend/middlewares/authMiddleware.js`,
      `backend/routes/`, `backend/controllers/`, `backend/server.js`.
    - Wrap every async route in try/catch, validate input, configure CORS.
    - Always provide `backend/.env.example`.
    """)

_FULLSTACK_INSTRUCTION = textwrap.dedent("""\
    You are a fullstack lead orchestrating complete systems.

    - Frontend: `frontend/index.html`, everything embedded (single file).
    - Backend: `backend/server.js`, `backend/routes/...` (Node.js + Express).
    - Always create `backend/.env.example`; connect the frontend to the
      backend with `fetch`.
    - When asked to plan, answer with a ```json fence holding
      {"title", "description", "structure": {"frontend": [...], "backend": [...]}}
      before writing any file.
    """)

_PERSONA_INSTRUCTIONS: dict[str, str] = {
    "frontend": _FRONTEND_INSTRUCTION,
    "backend": _BACKEND_INSTRUCTION,
    "fullstack": _FULLSTACK_INSTRUCTION,
}

_BATCH_MODE_INSTRUCTION = textwrap.dedent("""\
    [BATCH MODE - CONTINUOUS GENERATION]
    1. Generate several files in the same response when possible.
    2. End with `<!-- NEXT: folder/file.ext -->` to name the file the
       automation should create next.
    3. For a backend, generate server.js, then db.js, then the routes.
    """)

_STEP_MODE_INSTRUCTION = textwrap.dedent("""\
    [STEP-BY-STEP MODE]
    1. Focus on the requested file or the open file.
    2. After generating it, ask which step comes next.
    """)


def build_system_instruction(persona: Persona, batch_mode: bool) -> str:
    """Return the full system instruction for *persona* and mode."""
    instruction = _PERSONA_INSTRUCTIONS.get(persona, _FULLSTACK_INSTRUCTION)
    mode = _BATCH_MODE_INSTRUCTION if batch_mode else _STEP_MODE_INSTRUCTION
    return f"{instruction}\n{_OUTPUT_FORMAT_RULES}\n{mode}"


def build_context_prompt(
    request: str,
    files: Mapping[str, str],
    active_file: str = "",
) -> str:
    """Frame the user's request with the project file list and active file."""
    file_list = ", ".join(files) or "none"
    if active_file and files.get(active_file):
        active_content = f'Current content of "{active_file}":\n```\n{files[active_file]}\n```'
    else:
        active_content = "(empty or new file)"

    return (
        "[TECHNICAL CONTEXT]\n"
        f"Project files: {file_list}.\n"
        f'Open file: "{active_file}".\n'
        f"{active_content}\n\n"
        "[USER REQUEST]\n"
        f"{request}"
    )


def build_messages(
    request: str,
    files: Mapping[str, str],
    history: Sequence[ChatMessage] = (),
    active_file: str = "",
    config: PromptConfig | None = None,
) -> list[ChatMessage]:
    """Assemble the chat messages for one generation request.

    Only the last ``config.history_window`` history messages are sent.
    """
    config = config or PromptConfig()
    recent = list(history)[-config.history_window:] if config.history_window else []
    return [
        ChatMessage(role="system", content=build_system_instruction(config.persona, config.batch_mode)),
        *recent,
        ChatMessage(role="user", content=build_context_prompt(request, files, active_file)),
    ]
