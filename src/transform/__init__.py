"""Whole-archive bytecode transformation passes."""

from transform.access import AccessLevelCorrectionPass
from transform.debug import DebugAttributeStripPass
from transform.engine import ArchiveTransformer, ArchiveWriter, ClassPass
from transform.inner import InnerClassConstructorPass, InnerClassMappingPass
from transform.rename import KeywordRemovalPass, NameMappingPass
from transform.variables import VariableTableConstructionPass

__all__ = [
    "AccessLevelCorrectionPass",
    "ArchiveTransformer",
    "ArchiveWriter",
    "ClassPass",
    "DebugAttributeStripPass",
    "InnerClassConstructorPass",
    "InnerClassMappingPass",
    "KeywordRemovalPass",
    "NameMappingPass",
    "VariableTableConstructionPass",
]
