"""Decompiled source post-processing."""

from source.access_transformer import AccessTransformer, parse_rules
from source.extract import ExtractReport, extract_sources
from source.formatter import GoogleJavaFormatter, PassthroughFormatter, SourceFormatter

__all__ = [
    "AccessTransformer",
    "ExtractReport",
    "GoogleJavaFormatter",
    "PassthroughFormatter",
    "SourceFormatter",
    "extract_sources",
    "parse_rules",
]
