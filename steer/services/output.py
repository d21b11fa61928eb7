"""Captured output, buffered per target."""

from dataclasses import dataclass, field
from enum import Enum


class Stream(Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass
class CapturedOutput:
    """Buffers for one target; None means the stream is not captured."""

    stdout: list[str] | None = None
    stderr: list[str] | None = None

    def text(self, stream: Stream) -> str | None:
        chunks = self.stdout if stream is Stream.STDOUT else self.stderr
        return None if chunks is None else "".join(chunks)


@dataclass
class OutputCollector:
    """Collects stdout/stderr for each target as its steps complete.

    Each target owns its own buffer, so parallel workers never share state
    and output from different targets never interleaves.
    """

    capture: frozenset[Stream] = field(default_factory=frozenset)
    _buffers: dict[str, CapturedOutput] = field(default_factory=dict, init=False)

    def _buffer(self, target: str) -> CapturedOutput:
        buffer = self._buffers.get(target)
        if buffer is None:
            buffer = CapturedOutput(
                stdout=[] if Stream.STDOUT in self.capture else None,
                stderr=[] if Stream.STDERR in self.capture else None,
            )
            self._buffers[target] = buffer
        return buffer

    def start(self, target: str) -> None:
        """Open the buffers for a target so it reports even if silent."""
        self._buffer(target)

    def append(self, target: str, stream: Stream, text: str) -> None:
        """Add output for a target; ignored if the stream is not captured."""
        if stream not in self.capture or not text:
            return
        buffer = self._buffer(target)
        chunks = buffer.stdout if stream is Stream.STDOUT else buffer.stderr
        chunks.append(text)

    def get(self, target: str, stream: Stream) -> str | None:
        """Captured text for a target, or None if not captured."""
        buffer = self._buffers.get(target)
        if buffer is None:
            return None
        return buffer.text(stream)

    def report(self) -> dict[str, dict[str, str]]:
        """Mapping of target -> stream name -> captured text."""
        report: dict[str, dict[str, str]] = {}
        for target, buffer in self._buffers.items():
            entry = {
                stream.value: text
                for stream in Stream
                if (text := buffer.text(stream)) is not None
            }
            if entry:
                report[target] = entry
        return report
