"""Child process orchestration with optional stdout interception.

Two modes:

- Inherited: the child shares the caller's console streams and the
  wrapper blocks in a single wait.
- Intercepted: stdout and stderr are piped.  One reader thread per pipe
  pulls chunks of at most ``read_chunk_size`` bytes.  stderr chunks are
  copied unmodified to the caller's stderr from the reader thread.
  stdout chunks pass through a one-slot queue to the calling thread,
  which transforms and writes them one at a time, alternating a bounded
  wait for the next chunk with a non-blocking exit check.  A slow caller
  stalls the reader and, through the pipe, the child; at most one chunk
  waits in the wrapper.

Each stream keeps the child's emission order; the two streams are not
ordered relative to each other.

INVARIANT: both pipe read ends are closed and the child is reaped on every
exit path; ``subprocess.Popen`` as a context manager owns that cleanup.
"""

from __future__ import annotations

import logging
import queue
import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import BinaryIO

logger = logging.getLogger(__name__)

Command = str | Sequence[str]
Transform = Callable[[bytes], bytes]

# Intercepted children get no console window of their own (Windows only).
_INTERCEPT_CREATIONFLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


@dataclass(frozen=True)
class ProcessOutcome:
    """What the wrapper learned from one child run.

    ``exit_code`` is None when the status could not be retrieved.
    """

    pid: int
    exit_code: int | None
    intercepted: bool


class StreamReader(threading.Thread):
    """Read a pipe to EOF, handing each chunk to *deliver*.

    A read error ends the stream quietly: the child's exit code, not the
    pipe, is the authoritative success signal.  *on_eof* runs exactly once
    however the loop ends.
    """

    def __init__(
        self,
        stream: BinaryIO,
        chunk_size: int,
        deliver: Callable[[bytes], None],
        *,
        name: str,
        on_eof: Callable[[], None] | None = None,
    ) -> None:
        super().__init__(name=name, daemon=True)
        self._stream = stream
        self._chunk_size = chunk_size
        self._deliver = deliver
        self._on_eof = on_eof

    def run(self) -> None:
        try:
            while True:
                try:
                    chunk = self._stream.read(self._chunk_size)
                except (OSError, ValueError):
                    logger.debug(
                        "Read on %s failed; treating as end of stream", self.name, exc_info=True
                    )
                    break
                if not chunk:
                    break
                self._deliver(chunk)
        finally:
            if self._on_eof is not None:
                self._on_eof()


class _PassthroughSink:
    """Copy bytes to a binary stream, flushing after every chunk.

    If the destination breaks or is closed, later chunks are discarded so
    the pipe keeps draining and the child never blocks on a full buffer.
    """

    def __init__(self, stream: BinaryIO, label: str) -> None:
        self._stream = stream
        self._label = label
        self._broken = False

    def __call__(self, chunk: bytes) -> None:
        if self._broken:
            return
        try:
            self._stream.write(chunk)
            self._stream.flush()
        except (OSError, ValueError):
            self._broken = True
            logger.warning(
                "Writing to %s failed; discarding further output", self._label, exc_info=True
            )


def _transform_or_raw(transform: Transform, chunk: bytes) -> bytes:
    """Apply *transform*, falling back to the raw chunk on any failure."""
    try:
        return transform(chunk)
    except Exception:
        logger.warning("Output transform failed; forwarding chunk unchanged", exc_info=True)
        return chunk


class ProcessRunner:
    """Spawn the real executable and relay its output.

    Args:
        read_chunk_size: Upper bound on bytes per pipe read.
        poll_interval: Seconds per bounded wait in the drain loop.  This is a
            scheduling device, not a deadline: the runner waits for the child
            indefinitely.
        stdout_sink: Binary stream for forwarded stdout (default: process stdout).
        stderr_sink: Binary stream for forwarded stderr (default: process stderr).
    """

    def __init__(
        self,
        *,
        read_chunk_size: int = 16384,
        poll_interval: float = 0.1,
        stdout_sink: BinaryIO | None = None,
        stderr_sink: BinaryIO | None = None,
    ) -> None:
        self._chunk_size = read_chunk_size
        self._poll_interval = poll_interval
        self._stdout_sink = stdout_sink
        self._stderr_sink = stderr_sink

    def run_inherited(self, command: Command) -> ProcessOutcome:
        """Run with the caller's console streams and block until exit.

        Raises:
            OSError: The process could not be created.
        """
        sys.stdout.flush()
        sys.stderr.flush()
        with subprocess.Popen(command) as proc:
            logger.debug("Spawned pid %d (inherited streams)", proc.pid)
            exit_code = self._reap(proc)
        return ProcessOutcome(pid=proc.pid, exit_code=exit_code, intercepted=False)

    def run_intercepted(self, command: Command, transform: Transform) -> ProcessOutcome:
        """Run with piped streams, forwarding stdout through *transform*.

        Raises:
            OSError: A pipe or the process could not be created.
        """
        stdout_sink = self._stdout_sink or sys.stdout.buffer
        stderr_sink = self._stderr_sink or sys.stderr.buffer
        sys.stdout.flush()
        sys.stderr.flush()

        with subprocess.Popen(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            bufsize=0,
            creationflags=_INTERCEPT_CREATIONFLAGS,
        ) as proc:
            logger.debug("Spawned pid %d (intercepted streams)", proc.pid)
            assert proc.stdout is not None and proc.stderr is not None

            # The reader blocks until the previous chunk has been taken.
            chunks: queue.Queue[bytes | None] = queue.Queue(maxsize=1)
            stdout_reader = StreamReader(
                proc.stdout,
                self._chunk_size,
                chunks.put,
                name="dismwrap-stdout",
                on_eof=lambda: chunks.put(None),
            )
            stderr_reader = StreamReader(
                proc.stderr,
                self._chunk_size,
                _PassthroughSink(stderr_sink, "stderr"),
                name="dismwrap-stderr",
            )
            stdout_reader.start()
            stderr_reader.start()

            self._drain_stdout(proc, chunks, transform, _PassthroughSink(stdout_sink, "stdout"))
            stderr_reader.join()
            stdout_reader.join()
            exit_code = self._reap(proc)

        return ProcessOutcome(pid=proc.pid, exit_code=exit_code, intercepted=True)

    def _drain_stdout(
        self,
        proc: subprocess.Popen[bytes],
        chunks: queue.Queue[bytes | None],
        transform: Transform,
        write: Callable[[bytes], None],
    ) -> None:
        """Forward transformed stdout until EOF and child exit have both happened."""
        stdout_open = True
        while stdout_open or proc.poll() is None:
            if not stdout_open:
                try:
                    proc.wait(timeout=self._poll_interval)
                except subprocess.TimeoutExpired:
                    pass
                continue
            try:
                chunk = chunks.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if chunk is None:
                stdout_open = False
            else:
                write(_transform_or_raw(transform, chunk))

    @staticmethod
    def _reap(proc: subprocess.Popen[bytes]) -> int | None:
        try:
            return proc.wait()
        except OSError:
            logger.warning("Could not retrieve exit status of pid %d", proc.pid, exc_info=True)
            return None
