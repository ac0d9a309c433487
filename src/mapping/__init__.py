"""Name mapping tables, their file formats and the bytecode remapper."""

from mapping.keywords import KeywordRemapper
from mapping.loader import load_mcp_mapping, load_srg_mapping
from mapping.model import NameMapping
from mapping.remapper import MappingRemapper, Remapper, remap_class

__all__ = [
    "KeywordRemapper",
    "MappingRemapper",
    "NameMapping",
    "Remapper",
    "load_mcp_mapping",
    "load_srg_mapping",
    "remap_class",
]
