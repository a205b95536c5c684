"""Tests for argv builders and the pipeline executor."""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from db_dumper.config.models import CompressionSetting, ConnectionConfig
from db_dumper.dumper.commands import (
    SIGPIPE,
    compressor_command,
    format_command,
    is_executable,
    mysql_command,
    run_pipeline,
)
from db_dumper.errors import ProcessError

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses /bin/sh scripts")


def _connection(password: str = "s3cret") -> ConnectionConfig:
    return ConnectionConfig(host="db.internal", name="shop", user="backup", password=password)


def _sh(*script: str) -> list[str]:
    """argv running an inline /bin/sh script."""
    return ["/bin/sh", "-c", "; ".join(script)]


# ------------------------------------------------------------------
# argv builders
# ------------------------------------------------------------------


class TestMysqlCommand:
    """mysql_command() argv layout."""

    def test_credentials_as_discrete_arguments(self) -> None:
        assert mysql_command("mysqldump", _connection()) == [
            "mysqldump",
            "--user=backup",
            "--password=s3cret",
            "--host=db.internal",
            "shop",
        ]

    def test_options_follow_program(self) -> None:
        argv = mysql_command("mysqlcheck", _connection(), None, "--optimize")
        assert argv[:2] == ["mysqlcheck", "--optimize"]
        assert argv[-1] == "shop"

    def test_mysql_dir_prefix(self, tmp_path: Path) -> None:
        argv = mysql_command("mysql", _connection(), tmp_path)
        assert argv[0] == str(tmp_path / "mysql")

    def test_shell_metacharacters_untouched(self) -> None:
        """Passwords are passed verbatim, never shell-quoted or split."""
        argv = mysql_command("mysql", _connection("p@ss; rm -rf / $(x) 'q\""))
        assert "--password=p@ss; rm -rf / $(x) 'q\"" in argv


class TestCompressorCommand:
    """compressor_command() for each compression variant."""

    def test_path_lookup(self) -> None:
        assert compressor_command(CompressionSetting.by_path_lookup()) == ["bzip2", "--stdout"]

    def test_decompress(self) -> None:
        argv = compressor_command(CompressionSetting.by_path_lookup(), decompress=True)
        assert argv == ["bzip2", "--decompress", "--stdout"]

    def test_directory(self, tmp_path: Path) -> None:
        argv = compressor_command(CompressionSetting.at_directory(tmp_path))
        expected = "bzip2.exe" if sys.platform == "win32" else "bzip2"
        assert argv[0] == str(tmp_path / expected)


class TestFormatCommand:
    """format_command() display text."""

    def test_pipeline_with_redirects(self) -> None:
        text = format_command([["a", "x"], ["b"]], stdin="in.sql", stdout="out.sql")
        assert text == "a x | b < in.sql > out.sql"

    def test_password_masked(self) -> None:
        text = format_command([mysql_command("mysqldump", _connection())])
        assert "s3cret" not in text
        assert "--password=***" in text

    def test_arguments_quoted(self) -> None:
        assert format_command([["echo", "two words"]]) == "echo 'two words'"


class TestIsExecutable:
    """is_executable() checks."""

    def test_missing(self, tmp_path: Path) -> None:
        assert is_executable(tmp_path / "nope") is False

    def test_directory(self, tmp_path: Path) -> None:
        assert is_executable(tmp_path) is False

    @posix_only
    def test_mode_bits(self, tmp_path: Path) -> None:
        path = tmp_path / "tool"
        path.write_text("#!/bin/sh\n")
        path.chmod(0o644)
        assert is_executable(path) is False
        path.chmod(0o755)
        assert is_executable(path) is True


# ------------------------------------------------------------------
# run_pipeline() against real processes
# ------------------------------------------------------------------


@posix_only
class TestRunPipeline:
    """run_pipeline() spawning, chaining and exit status handling."""

    def test_single_stage_to_file(self, tmp_path: Path) -> None:
        out_path = tmp_path / "out.txt"
        with open(out_path, "wb") as out:
            run_pipeline([_sh("echo hello")], stdout=out)
        assert out_path.read_text() == "hello\n"

    def test_stages_are_chained(self, tmp_path: Path) -> None:
        out_path = tmp_path / "out.txt"
        with open(out_path, "wb") as out:
            run_pipeline([_sh("echo abc"), ["tr", "a-z", "A-Z"]], stdout=out)
        assert out_path.read_text() == "ABC\n"

    def test_stdin_file(self, tmp_path: Path) -> None:
        in_path = tmp_path / "in.txt"
        in_path.write_text("from file\n")
        out_path = tmp_path / "out.txt"
        with open(in_path, "rb") as source, open(out_path, "wb") as out:
            run_pipeline([["cat"]], stdin=source, stdout=out)
        assert out_path.read_text() == "from file\n"

    def test_nonzero_exit(self) -> None:
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([_sh("echo 'access denied' >&2", "exit 2")])
        assert exc_info.value.exit_code == 2
        assert exc_info.value.stderr == "access denied"
        assert "/bin/sh" in exc_info.value.command

    def test_first_failing_stage_reported(self) -> None:
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([
                _sh("echo first >&2", "exit 3"),
                _sh("cat > /dev/null", "echo second >&2", "exit 4"),
            ])
        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "first"

    def test_later_stage_failure(self) -> None:
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([_sh("echo data"), _sh("cat > /dev/null", "echo broken >&2", "exit 5")])
        assert exc_info.value.exit_code == 5
        assert exc_info.value.stderr == "broken"

    def test_downstream_exit_beats_upstream_broken_pipe(self) -> None:
        """A reader exiting early is reported instead of the writer's SIGPIPE."""
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([
                ["head", "-c", "20000000", "/dev/zero"],
                _sh("echo 'No space left on device' >&2", "exit 4"),
            ], timeout=30)
        assert exc_info.value.exit_code == 4
        assert exc_info.value.stderr == "No space left on device"

    def test_large_stderr_does_not_deadlock(self) -> None:
        """Stderr far beyond a pipe buffer is drained."""
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([_sh("head -c 1000000 /dev/zero | tr '\\0' x >&2", "exit 1")], timeout=30)
        assert len(exc_info.value.stderr) == 1_000_000

    def test_stderr_decoded_with_replacement(self) -> None:
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([_sh("printf 'bad \\377 byte' >&2", "exit 1")])
        assert exc_info.value.stderr == "bad \ufffd byte"

    def test_success_stderr_ignored(self) -> None:
        run_pipeline([_sh("echo warning >&2")])

    def test_launch_failure(self, tmp_path: Path) -> None:
        with pytest.raises(ProcessError) as exc_info:
            run_pipeline([[str(tmp_path / "missing-binary")]])
        assert exc_info.value.exit_code is None
        assert "could not be launched" in str(exc_info.value)

    def test_timeout(self) -> None:
        with pytest.raises(ProcessError, match="timed out"):
            run_pipeline([["sleep", "10"]], timeout=0.2)

    def test_empty_pipeline(self) -> None:
        with pytest.raises(ValueError):
            run_pipeline([])


class TestRunPipelineMocked:
    """run_pipeline() wiring, with Popen mocked."""

    def test_intermediate_pipe_closed_in_parent(self) -> None:
        first, second = MagicMock(returncode=0), MagicMock(returncode=0, stdout=None)
        with patch("db_dumper.dumper.commands.subprocess.Popen", side_effect=[first, second]) as popen:
            run_pipeline([["a"], ["b"]])

        assert popen.call_args_list[1].kwargs["stdin"] is first.stdout
        first.stdout.close.assert_called_once()

    def test_no_shell(self) -> None:
        proc = MagicMock(returncode=0, stdout=None)
        with patch("db_dumper.dumper.commands.subprocess.Popen", return_value=proc) as popen:
            run_pipeline([["a", "b c"]])
        args, kwargs = popen.call_args
        assert args[0] == ["a", "b c"]
        assert not kwargs.get("shell", False)

    @pytest.mark.parametrize("upstream_code", [-SIGPIPE, 128 + SIGPIPE])
    def test_broken_pipe_stage_skipped(self, upstream_code: int) -> None:
        first = MagicMock(returncode=upstream_code)
        second = MagicMock(returncode=4, stdout=None)
        with patch("db_dumper.dumper.commands.subprocess.Popen", side_effect=[first, second]):
            with pytest.raises(ProcessError) as exc_info:
                run_pipeline([["a"], ["b"]])
        assert exc_info.value.exit_code == 4

    def test_broken_pipe_alone_is_reported(self) -> None:
        first = MagicMock(returncode=-SIGPIPE)
        second = MagicMock(returncode=0, stdout=None)
        with patch("db_dumper.dumper.commands.subprocess.Popen", side_effect=[first, second]):
            with pytest.raises(ProcessError) as exc_info:
                run_pipeline([["a"], ["b"]])
        assert exc_info.value.exit_code == -SIGPIPE
