"""codestream: rebuild named files from a streaming code-generation response.

Usage::

    from codestream import StreamSession, merge_artifacts

    session = StreamSession(snapshot=files)
    async for chunk in client.stream_chat(messages):
        files = merge_artifacts(files, session.feed(chunk))
    result = session.finish()
"""

from codestream.driver import SessionResult, StreamSession, merge_artifacts

__all__ = [
    "StreamSession",
    "SessionResult",
    "merge_artifacts",
]
