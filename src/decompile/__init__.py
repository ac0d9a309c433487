"""Decompilation of remapped archives into source archives."""

from decompile.bridge import DecompileReport, decompile_archive
from decompile.engine import Decompiler, FernflowerDecompiler
from decompile.sink import ArchiveResultSink, ResultSink

__all__ = [
    "ArchiveResultSink",
    "DecompileReport",
    "Decompiler",
    "FernflowerDecompiler",
    "ResultSink",
    "decompile_archive",
]
