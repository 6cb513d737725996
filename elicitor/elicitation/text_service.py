"""Contract for the external text-understanding collaborator.

A service either answers in one piece via ``complete`` or yields
incremental chunks ending in a ``finished`` marker. Either way it may fail
or return unstructured text at any time; callers must tolerate both.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from elicitor.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class TextUnderstandingService(Protocol):
    """Anything that can answer a list of role-tagged prompt messages."""

    def complete(self, messages: list[dict[str, str]]) -> str:
        """Return the full reply text.

        Raises:
            UpstreamUnavailable: If the service cannot be reached.
        """
        ...


@dataclass(frozen=True)
class StreamChunk:
    """One increment of a streamed reply."""

    content: str
    trace_id: str | None = None
    finished: bool = False


@dataclass(frozen=True)
class CompletionResult:
    """A reply assembled from a stream, with its opaque trace id."""

    text: str
    trace_id: str | None = None


def collect_stream(chunks: Iterable[StreamChunk]) -> CompletionResult:
    """Concatenate streamed chunks up to and including the finished marker.

    Raises:
        UpstreamUnavailable: If the stream ends without a finished marker.
    """
    parts: list[str] = []
    trace_id: str | None = None

    for chunk in chunks:
        if chunk.trace_id:
            trace_id = chunk.trace_id
        if chunk.content:
            parts.append(chunk.content)
        if chunk.finished:
            return CompletionResult(text="".join(parts), trace_id=trace_id)

    logger.warning(f"Stream ended without a finished marker (trace_id={trace_id})")
    raise UpstreamUnavailable("Text stream ended before completion")


class StreamingServiceAdapter:
    """Expose a chunk-streaming callable as a TextUnderstandingService."""

    def __init__(self, stream_fn):
        self._stream_fn = stream_fn
        self.last_trace_id: str | None = None

    def complete(self, messages: list[dict[str, str]]) -> str:
        result = collect_stream(self._stream_fn(messages))
        self.last_trace_id = result.trace_id
        return result.text
