"""Bytecode remapping stages.

The first level turns obfuscated names into stable searge identifiers and
restores the structure the obfuscator removed. The second level replaces
searge identifiers with readable names and then clears every identifier
that became a Java keyword.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.coordinates import STAGE_APPLY_MCP, STAGE_APPLY_SRG
from mapping.loader import load_mcp_mapping, load_srg_mapping
from pipeline.engine import BaseTask
from rules.inclusion import SERVER_CLASS_RULES, SERVER_RESOURCE_RULES
from transform.debug import DebugAttributeStripPass
from transform.engine import ArchiveTransformer
from transform.inner import InnerClassConstructorPass, InnerClassMappingPass
from transform.rename import KeywordRemovalPass, NameMappingPass
from transform.variables import VariableTableConstructionPass

if TYPE_CHECKING:
    from mapping.model import NameMapping
    from pipeline.engine import TaskContext
    from transform.engine import ClassPass

SRG_PARAMETER = "srg"
MCP_PARAMETER = "mcp"


def srg_passes(mapping: NameMapping) -> list[ClassPass]:
    passes: list[ClassPass] = [
        DebugAttributeStripPass(local_variables=True, parameters=True),
        VariableTableConstructionPass(),
        NameMappingPass(mapping),
    ]
    if mapping.inner_classes is not None:
        passes.append(InnerClassMappingPass(mapping.inner_classes))
    passes.append(InnerClassConstructorPass())
    return passes


def mcp_passes(mapping: NameMapping) -> list[ClassPass]:
    return [NameMappingPass(mapping), KeywordRemovalPass()]


class ApplySrgMappingsTask(BaseTask):
    name = STAGE_APPLY_SRG
    requires_input = True
    requires_output = True
    parameter_names = frozenset({SRG_PARAMETER})

    def __init__(self, *, workers: int | None = None) -> None:
        self.workers = workers

    def execute(self, context: TaskContext) -> None:
        mapping = load_srg_mapping(context.parameter(SRG_PARAMETER))
        transformer = ArchiveTransformer(
            srg_passes(mapping),
            class_rules=SERVER_CLASS_RULES,
            resource_rules=SERVER_RESOURCE_RULES,
            workers=self.workers,
        )
        transformer.transform(context.required_input(), context.required_output())


class ApplyMcpMappingsTask(BaseTask):
    name = STAGE_APPLY_MCP
    requires_input = True
    requires_output = True
    parameter_names = frozenset({MCP_PARAMETER})

    def __init__(self, *, workers: int | None = None) -> None:
        self.workers = workers

    def execute(self, context: TaskContext) -> None:
        mapping = load_mcp_mapping(context.parameter(MCP_PARAMETER))
        transformer = ArchiveTransformer(mcp_passes(mapping), workers=self.workers)
        transformer.transform(context.required_input(), context.required_output())


__all__ = [
    "MCP_PARAMETER",
    "SRG_PARAMETER",
    "ApplyMcpMappingsTask",
    "ApplySrgMappingsTask",
    "mcp_passes",
    "srg_passes",
]
