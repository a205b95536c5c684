"""Exception hierarchy for backup and restore operations.

Every failure surfaces to the immediate caller as one of these types.
Nothing is retried or swallowed inside the library.

Usage:
    from db_dumper.errors import DumperError, ProcessError

    try:
        dumper.dump()
    except ProcessError as e:
        print(e.exit_code, e.stderr)
    except DumperError as e:
        print(f"Backup failed: {e}")
"""


class DumperError(Exception):
    """Base class for all db-dumper errors."""

    pass


class ConfigurationError(DumperError):
    """Backup directory or compressor setup is unusable."""

    pass


class InvalidArgumentError(DumperError, ValueError):
    """A required argument is empty or missing."""

    pass


class BackupNotFoundError(DumperError):
    """Referenced backup file does not exist on disk."""

    def __init__(self, filename: str, message: str | None = None):
        super().__init__(message or f'The backup file "{filename}" does not exist.')
        self.filename = filename


class BackupIOError(DumperError):
    """Filesystem operation failed for a reason other than not-found."""

    def __init__(self, filename: str, message: str):
        super().__init__(message)
        self.filename = filename


class ProcessError(DumperError):
    """External command exited with a nonzero status or could not be launched.

    Attributes:
        command: Display text of the command pipeline (credentials masked).
        exit_code: Exit status of the failing stage. ``None`` when the
            process could not be launched at all.
        stderr: Captured standard error of the failing stage, decoded as UTF-8.
    """

    def __init__(self, command: str, exit_code: int | None, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        if exit_code is None:
            message = f'The "{command}" process could not be launched. Error: "{stderr}"'
        else:
            message = (
                f'The "{command}" process failed with the "{exit_code}" code. '
                f'Error: "{stderr}"'
            )
        super().__init__(message)
