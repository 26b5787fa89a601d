"""
Pipe drain workers.

A drain worker empties one process output pipe in its own thread so that the
process never blocks on a full pipe buffer. Each line read is forwarded to a
sink: the console, an in-memory buffer, or a file.
"""

import logging
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, List, Optional, TextIO, Union

from ..models.execution import OutputMode

logger = logging.getLogger(__name__)


class OutputSink(ABC):
    """
    Destination for the lines of one output stream.

    Sinks are used by exactly one drain worker, so they need no locking.
    """

    @abstractmethod
    def write_line(self, line: str) -> None:
        """Forward one line, without its line terminator."""

    def close(self) -> None:
        """Release whatever the sink holds open. Safe to call twice."""


class ConsoleSink(OutputSink):
    """Print each line as soon as it is read."""

    def __init__(self, stream: Optional[TextIO] = None):
        # None means "whatever sys.stdout is at write time".
        self.stream = stream

    def write_line(self, line: str) -> None:
        target = self.stream if self.stream is not None else sys.stdout
        target.write(line + "\n")
        target.flush()


class BufferSink(OutputSink):
    """Keep lines in memory so they can be printed after the run."""

    def __init__(self):
        self.lines: List[str] = []

    def write_line(self, line: str) -> None:
        self.lines.append(line)

    def print_to(self, stream: Optional[TextIO] = None) -> None:
        target = stream if stream is not None else sys.stdout
        for line in self.lines:
            target.write(line + "\n")
        target.flush()

    def release(self) -> List[str]:
        """Hand the captured lines over and forget them."""
        lines, self.lines = self.lines, []
        return lines


class FileSink(OutputSink):
    """
    Append each line to a file.

    The file is opened (and truncated) on construction, so a failure to open
    it surfaces before the process is started.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file: Optional[IO[str]] = open(self.path, "w", encoding="utf-8")

    def write_line(self, line: str) -> None:
        if self._file is None:
            raise ValueError(f"write to closed sink {self.path}")
        self._file.write(line + "\n")

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None


def create_sink(
    mode: OutputMode,
    path: Optional[Union[str, Path]] = None,
    stream: Optional[TextIO] = None
) -> OutputSink:
    """
    Build the sink for an output mode.

    Args:
        mode: Where the lines should go
        path: File to write for ``OutputMode.FILE``
        stream: Console stream for ``OutputMode.CONSOLE`` (defaults to stdout)

    Raises:
        ValueError: If FILE mode is requested without a path
        OSError: If the file cannot be opened
    """
    if mode is OutputMode.CONSOLE:
        return ConsoleSink(stream)
    if mode is OutputMode.BUFFER:
        return BufferSink()
    if mode is OutputMode.FILE:
        if path is None:
            raise ValueError("OutputMode.FILE requires a path")
        return FileSink(path)
    raise ValueError(f"Unknown output mode: {mode}")


class PipeDrainWorker:
    """
    Drains one process output stream into a sink.

    The worker:
    1. reads the stream line by line until end-of-stream
    2. forwards every line to its sink
    3. closes the sink and the stream on every exit path

    Read and write errors end the worker quietly: a broken pipe after the
    process has died is expected. A cancellation request is honoured between
    reads and may leave unread data in the pipe.
    """

    def __init__(self, stream: IO[str], sink: OutputSink, name: str):
        """
        Initialize the drain worker.

        Args:
            stream: Readable text stream of the process (stdout or stderr pipe)
            sink: Where each line goes; owned by the worker from now on
            name: Name used for the thread and in log messages
        """
        self.stream = stream
        self.sink = sink
        self.name = name

        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.lines_forwarded = 0
        self.error: Optional[BaseException] = None

    def start(self) -> None:
        """Start draining in a background thread."""
        if self.thread is not None:
            logger.warning(f"Drain worker {self.name} already started")
            return

        self.thread = threading.Thread(
            target=self.drain_loop,
            name=f"Drain-{self.name}",
            daemon=True
        )
        self.thread.start()
        logger.debug(f"Drain worker {self.name} started")

    def cancel(self) -> None:
        """Ask the worker to stop at the next line boundary."""
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the worker to finish.

        Args:
            timeout: Seconds to wait, or None to wait until end-of-stream

        Returns:
            True if the worker has finished
        """
        if self.thread is None:
            return True
        self.thread.join(timeout=timeout)
        return not self.thread.is_alive()

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def drain_loop(self) -> None:
        """Main read loop; runs in the worker thread."""
        try:
            for raw_line in iter(self.stream.readline, ""):
                if self.stop_event.is_set():
                    logger.debug(f"Drain worker {self.name} cancelled")
                    break
                self.sink.write_line(raw_line.rstrip("\r\n"))
                self.lines_forwarded += 1
        except (OSError, ValueError) as e:
            self.error = e
            logger.debug(f"Drain worker {self.name} stopped on I/O error: {e}")
        finally:
            self._close_quietly()
            logger.debug(
                f"Drain worker {self.name} finished after {self.lines_forwarded} lines"
            )

    def _close_quietly(self) -> None:
        try:
            self.sink.close()
        except OSError as e:
            logger.warning(f"Failed to close output of {self.name}: {e}")
        try:
            self.stream.close()
        except (OSError, ValueError) as e:
            logger.debug(f"Failed to close pipe of {self.name}: {e}")
