"""Argument-vector builders and the process pipeline executor.

Commands are built as argv lists and spawned without a shell, so
credentials containing shell metacharacters are passed through verbatim.
A pipeline is a list of argv stages; each stage's stdout feeds the next
stage's stdin, like ``a | b`` in a shell.

Each stage writes stderr to its own temporary file.  Stderr is therefore
fully drained while the stage runs, whatever its volume, and no reader
threads are needed to avoid pipe deadlocks.

Usage:
    from db_dumper.dumper.commands import mysql_command, run_pipeline

    argv = mysql_command("mysqldump", connection)
    with open("out.sql", "wb") as out:
        run_pipeline([argv], stdout=out)
"""

import logging
import os
import shlex
import signal
import subprocess
import sys
import tempfile
import time
from collections.abc import Sequence
from pathlib import Path
from typing import IO

from db_dumper.config.models import CompressionSetting, ConnectionConfig
from db_dumper.errors import ProcessError

logger = logging.getLogger(__name__)

MASK = "***"
PASSWORD_OPTION = "--password="
# Not defined on Windows
SIGPIPE = getattr(signal, "SIGPIPE", 13)


def executable_name(program: str) -> str:
    """Platform file name of *program* (``bzip2.exe`` on Windows)."""
    return program + ".exe" if sys.platform == "win32" else program


def mysql_command(
    program: str,
    connection: ConnectionConfig,
    mysql_dir: Path | None = None,
    *options: str,
) -> list[str]:
    """Build the argv for a MySQL CLI program.

    Args:
        program: ``mysqldump``, ``mysql`` or ``mysqlcheck``.
        connection: Credentials, appended as ``--user``/``--password``/``--host``
            flags followed by the database name.
        mysql_dir: Directory holding the binaries.  ``None`` uses ``PATH``.
        options: Extra options placed right after the program
            (e.g. ``"--optimize"``).
    """
    executable = str(mysql_dir / program) if mysql_dir else program
    return [
        executable,
        *options,
        f"--user={connection.user}",
        f"{PASSWORD_OPTION}{connection.password.get_secret_value()}",
        f"--host={connection.host}",
        connection.name,
    ]


def compressor_command(compression: CompressionSetting, decompress: bool = False) -> list[str]:
    """Build the ``bzip2`` filter argv for a compression setting."""
    if compression.mode == "directory":
        executable = str(compression.directory / executable_name("bzip2"))
    else:
        executable = "bzip2"

    if decompress:
        return [executable, "--decompress", "--stdout"]
    return [executable, "--stdout"]


def format_command(
    stages: Sequence[Sequence[str]],
    stdin: str | None = None,
    stdout: str | None = None,
) -> str:
    """Shell-like display text for a pipeline, with passwords masked.

    Only used for log lines and error messages; never executed.
    """
    text = " | ".join(shlex.join(_mask(arg) for arg in stage) for stage in stages)
    if stdin:
        text += f" < {stdin}"
    if stdout:
        text += f" > {stdout}"
    return text


def _mask(arg: str) -> str:
    if arg.startswith(PASSWORD_OPTION):
        return PASSWORD_OPTION + MASK
    return arg


def _stream_name(stream: IO[bytes] | None) -> str | None:
    name = getattr(stream, "name", None)
    return name if isinstance(name, str) else None


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


def run_pipeline(
    stages: Sequence[Sequence[str]],
    stdin: IO[bytes] | None = None,
    stdout: IO[bytes] | None = None,
    timeout: float | None = None,
) -> None:
    """Run a pipeline of commands and wait for all of them.

    Args:
        stages: argv lists, connected stdout -> stdin in order.
        stdin: File fed to the first stage (default: empty input).
        stdout: File receiving the last stage's output (default: discarded).
        timeout: Seconds to wait for the whole pipeline.  ``None`` runs to
            completion.

    Raises:
        ProcessError: If a stage cannot be launched, exits nonzero, or the
            timeout expires.  When several stages fail, the first one in
            pipeline order is reported, skipping upstream stages killed by
            SIGPIPE after a later stage exited.
    """
    if not stages:
        raise ValueError("Pipeline needs at least one command")

    command = format_command(stages, stdin=_stream_name(stdin), stdout=_stream_name(stdout))
    logger.debug(f"Running: {command}")

    processes: list[subprocess.Popen] = []
    stderr_files = []
    try:
        upstream = stdin if stdin is not None else subprocess.DEVNULL
        for i, argv in enumerate(stages):
            if i < len(stages) - 1:
                downstream = subprocess.PIPE
            else:
                downstream = stdout if stdout is not None else subprocess.DEVNULL

            err = tempfile.TemporaryFile()
            stderr_files.append(err)
            try:
                process = subprocess.Popen(list(argv), stdin=upstream, stdout=downstream, stderr=err)
            except OSError as e:
                _kill_all(processes)
                raise ProcessError(command, None, str(e)) from e

            # The parent must not hold intermediate pipe ends, otherwise an
            # upstream stage never sees its reader exit
            if processes and processes[-1].stdout is not None:
                processes[-1].stdout.close()
            processes.append(process)
            upstream = process.stdout

        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            for process in processes:
                remaining = None if deadline is None else max(deadline - time.monotonic(), 0)
                process.wait(timeout=remaining)
        except subprocess.TimeoutExpired as e:
            _kill_all(processes)
            raise ProcessError(command, None, f"timed out after {timeout} seconds") from e

        failed = [
            (argv, process, err)
            for argv, process, err in zip(stages, processes, stderr_files)
            if process.returncode != 0
        ]
        if failed:
            argv, process, err = _root_failure(failed)
            err.seek(0)
            logger.debug(f"{argv[0]} exited with code {process.returncode}")
            raise ProcessError(command, process.returncode, _decode(err.read()))
    finally:
        for err in stderr_files:
            err.close()


def _broken_pipe(returncode: int) -> bool:
    # -SIGPIPE when the stage itself was killed, 128 + SIGPIPE from a shell
    return returncode in (-SIGPIPE, 128 + SIGPIPE)


def _root_failure(failed: list) -> tuple:
    """First failed stage that did not merely lose its reader.

    An upstream stage dies of SIGPIPE when a later stage exits early, so
    the later stage holds the real exit code and stderr.
    """
    for stage in failed:
        if not _broken_pipe(stage[1].returncode):
            return stage
    return failed[0]


def _kill_all(processes: list[subprocess.Popen]) -> None:
    for process in processes:
        if process.poll() is None:
            process.kill()
        process.wait()
        if process.stdout is not None:
            process.stdout.close()


def is_executable(path: Path) -> bool:
    """True if *path* is an existing file the current user may execute."""
    return path.is_file() and os.access(path, os.X_OK)
