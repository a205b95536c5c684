"""Dump/restore orchestration over the MySQL CLI binaries.

Usage:
    from db_dumper.dumper import DumpRunner, build_filename
"""

from db_dumper.dumper.filename import FilenameFormatter, build_filename, default_stem
from db_dumper.dumper.runner import DumpRunner

__all__ = [
    "DumpRunner",
    "FilenameFormatter",
    "build_filename",
    "default_stem",
]
