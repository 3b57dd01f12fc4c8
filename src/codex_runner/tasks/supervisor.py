"""Subprocess supervision for a single task."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Sequence

from codex_runner.tasks.errors import SpawnError
from codex_runner.tasks.lines import LineReassembler

READ_CHUNK_SIZE = 4096

LineHandler = Callable[[str, str], None]
ExitHandler = Callable[[int], None]
ErrorHandler = Callable[[BaseException], None]


def build_command(template: Sequence[str], prompt: str, cwd: str) -> list[str]:
    """Render the argument template for one task.

    ``{prompt}`` and ``{cwd}`` are substituted inside each element. The
    result is passed to exec directly, so no quoting is applied.
    """
    return [part.replace("{cwd}", cwd).replace("{prompt}", prompt) for part in template]


class ProcessSupervisor:
    """Own the external process of one task from spawn to exit.

    ``start`` launches the process and raises ``SpawnError`` when that is
    impossible. ``run`` pumps stdout and stderr through independent line
    reassemblers, then reports the outcome through exactly one of
    ``on_exit`` or ``on_error``. Retained partial lines are flushed to
    ``on_line`` before either callback fires.
    """

    def __init__(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str,
        *,
        on_line: LineHandler,
        on_exit: ExitHandler,
        on_error: ErrorHandler,
        chunk_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.executable = executable
        self.args = list(args)
        self.cwd = cwd
        self.chunk_size = chunk_size
        self._on_line = on_line
        self._on_exit = on_exit
        self._on_error = on_error
        self._process: asyncio.subprocess.Process | None = None
        self._buffers = {"stdout": LineReassembler(), "stderr": LineReassembler()}
        self._signaled = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def signaled(self) -> bool:
        return self._signaled

    async def start(self) -> None:
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.executable,
                *self.args,
                cwd=self.cwd,
                env=os.environ.copy(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as error:
            if error.filename is not None and os.fspath(error.filename) == self.cwd:
                message = f"Working directory not found: {self.cwd}"
            else:
                message = f"Command not found: {self.executable}"
            raise SpawnError(message, executable=self.executable) from error
        except PermissionError as error:
            if error.filename is not None and os.fspath(error.filename) == self.cwd:
                message = f"Working directory is not accessible: {self.cwd}"
            else:
                message = f"Command is not executable: {self.executable}"
            raise SpawnError(message, executable=self.executable) from error
        except OSError as error:
            raise SpawnError(
                f"Failed to start {self.executable}: {error}",
                executable=self.executable,
            ) from error
        except ValueError as error:
            # e.g. an embedded NUL byte in the prompt, cwd or executable
            raise SpawnError(
                f"Invalid command for {self.executable}: {error}",
                executable=self.executable,
            ) from error

    async def run(self) -> None:
        process = self._process
        if process is None:
            raise RuntimeError("Process has not been started")
        assert process.stdout is not None and process.stderr is not None

        pumps = [
            asyncio.ensure_future(self._pump(process.stdout, "stdout")),
            asyncio.ensure_future(self._pump(process.stderr, "stderr")),
        ]
        try:
            await asyncio.gather(*pumps)
            returncode = await process.wait()
        except asyncio.CancelledError:
            self._flush()
            self._kill_quietly()
            raise
        except Exception as exc:
            self._flush()
            self._on_error(exc)
            self._kill_quietly()
            return
        finally:
            for pump in pumps:
                pump.cancel()

        self._flush()
        self._on_exit(returncode)

    def terminate(self) -> bool:
        """Send SIGTERM once. Returns False when there is nothing to signal.

        ``OSError`` from the platform (e.g. the process already exited
        between the check and the signal) propagates to the caller.
        """
        process = self._process
        if process is None or process.returncode is not None or self._signaled:
            return False
        self._signaled = True
        process.terminate()
        return True

    async def _pump(self, reader: asyncio.StreamReader, stream: str) -> None:
        buffer = self._buffers[stream]
        while True:
            chunk = await reader.read(self.chunk_size)
            if not chunk:
                return
            for line in buffer.feed(chunk):
                self._on_line(stream, line)

    def _flush(self) -> None:
        for stream, buffer in self._buffers.items():
            for line in buffer.flush():
                self._on_line(stream, line)

    def _kill_quietly(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except OSError:
            return
