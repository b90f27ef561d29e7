"""
Command executor: run a child process, echo its stdout live while buffering
it, and turn Ctrl-C into an orderly shutdown of the child.

Flow:
1. Spawn the command (stdin inherited, stdout/stderr piped)
2. Race (stdout pump, then child exit) against SIGINT
3. exit first   -> non-zero status raises CommandFailure
   SIGINT first -> forward one SIGINT to the child, wait for it to exit
4. Leaving execute() with the child still alive kills it
"""

import asyncio
import codecs
import os
import signal
import sys
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

import structlog

from notifyme.config import settings
from notifyme.errors import CaptureError, CommandFailure, SpawnError

logger = structlog.get_logger()

# After the child exits on an interrupt, how long to keep draining its stdout
# (a grandchild may still hold the pipe open).
DRAIN_GRACE_SECONDS = 1.0


class ExecutorState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class ExecutionOutcome:
    captured_output: str | None
    success: bool
    failure_detail: str | None = None
    returncode: int | None = None
    interrupted: bool = False


class CommandExecutor:
    def __init__(
        self,
        command: str,
        args: list[str] | tuple[str, ...] = (),
        *,
        echo: TextIO | None = None,
        chunk_size: int | None = None,
    ):
        self.command = command
        self.args = list(args)
        self.echo = echo
        self.chunk_size = chunk_size or settings.OUTPUT_CHUNK_SIZE
        self.state = ExecutorState.NOT_STARTED
        self.pid: int | None = None
        self._chunks: list[str] = []
        self._outcome: ExecutionOutcome | None = None
        self._interrupts = 0

    @property
    def outcome(self) -> ExecutionOutcome | None:
        return self._outcome

    def get_output(self) -> str | None:
        """Everything the child wrote to stdout, or None if nothing was captured."""
        if self._outcome is None:
            return None
        return self._outcome.captured_output

    async def execute(self) -> None:
        """Run the command to completion (or until interrupted).

        Raises:
            SpawnError: the command could not be launched.
            CaptureError: the stdout pipe is unavailable.
            CommandFailure: the command exited with a non-zero status.
        """
        if self.state is not ExecutorState.NOT_STARTED:
            raise RuntimeError("CommandExecutor.execute() can only be called once")

        log = logger.bind(command=self.command)
        log.info("executor.start", args=self.args)

        try:
            proc = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            log.error("executor.spawn_failed", error=str(e))
            raise SpawnError(f"Failed to launch {self.command!r}: {e}") from e

        self.state = ExecutorState.RUNNING
        self.pid = proc.pid
        try:
            if proc.stdout is None:
                raise CaptureError("Failed to capture stdout")
            await self._supervise(proc, log)
        finally:
            if proc.returncode is None:
                log.warning("executor.killing_child", pid=proc.pid)
                with suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()

    async def _supervise(self, proc: asyncio.subprocess.Process, log) -> None:
        loop = asyncio.get_running_loop()
        interrupted = asyncio.Event()
        previous = signal.getsignal(signal.SIGINT)
        handles_sigint = self._install_sigint(loop, proc, interrupted, log)

        async def run_to_exit() -> int:
            await self._pump(proc.stdout)
            return await proc.wait()

        pump = asyncio.create_task(run_to_exit())
        waiter = asyncio.create_task(interrupted.wait())
        drain = asyncio.create_task(self._drain(proc.stderr))
        try:
            await asyncio.wait({pump, waiter}, return_when=asyncio.FIRST_COMPLETED)

            # An interrupt seen before the exit was reaped wins, even when both finished together.
            if not interrupted.is_set():
                returncode = pump.result()
                stderr = await drain
                output = self._captured()
                if returncode == 0:
                    self._finish(ExecutorState.COMPLETED, output, returncode)
                    log.info("executor.succeeded", pid=proc.pid)
                    return

                failure = CommandFailure(returncode, stderr)
                self._finish(ExecutorState.COMPLETED, output, returncode, failure=str(failure))
                log.error("executor.failed", returncode=returncode, stderr=stderr[:500])
                raise failure

            # Interrupted: the child got its SIGINT, let it wind down.
            returncode = await proc.wait()
            await asyncio.wait({pump}, timeout=DRAIN_GRACE_SECONDS)
            self._finish(ExecutorState.INTERRUPTED, self._captured(), returncode, interrupted=True)
            log.info("executor.interrupted", pid=proc.pid, returncode=returncode)
        finally:
            if handles_sigint:
                loop.remove_signal_handler(signal.SIGINT)
                if previous is not None:
                    signal.signal(signal.SIGINT, previous)
                else:
                    # Installed outside Python; remove_signal_handler left default_int_handler.
                    log.warning("executor.sigint_handler_not_restored")
            pending = [t for t in (pump, waiter, drain) if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _install_sigint(self, loop, proc, interrupted: asyncio.Event, log):
        def on_sigint() -> None:
            self._interrupts += 1
            if self._interrupts > 1:
                log.info("executor.interrupt_ignored", count=self._interrupts)
                return
            log.info("executor.interrupt_forwarded", pid=proc.pid)
            with suppress(ProcessLookupError):
                os.kill(proc.pid, signal.SIGINT)
            interrupted.set()

        try:
            loop.add_signal_handler(signal.SIGINT, on_sigint)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not on the main thread, or no Unix signals on this platform.
            log.warning("executor.sigint_unavailable")
            return False
        return True

    async def _pump(self, stream: asyncio.StreamReader) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                break
            self._emit(decoder.decode(chunk))
        self._emit(decoder.decode(b"", final=True))

    def _emit(self, text: str) -> None:
        if not text:
            return
        echo = self.echo or sys.stdout
        echo.write(text)
        echo.flush()
        self._chunks.append(text)

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None) -> str:
        # stderr is kept aside and only reported on a non-zero exit
        if stream is None:
            return ""
        data = await stream.read()
        return data.decode("utf-8", errors="replace")

    def _captured(self) -> str | None:
        # Unbounded: a very chatty command grows this buffer without limit.
        return "".join(self._chunks) or None

    def _finish(
        self,
        state: ExecutorState,
        output: str | None,
        returncode: int,
        *,
        failure: str | None = None,
        interrupted: bool = False,
    ) -> None:
        self.state = state
        self._outcome = ExecutionOutcome(
            captured_output=output,
            success=failure is None,
            failure_detail=failure,
            returncode=returncode,
            interrupted=interrupted,
        )
