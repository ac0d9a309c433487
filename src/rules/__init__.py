"""Project configuration and archive inclusion rules."""

from rules.config import DecompipeConfig, load_config, resolve_paths
from rules.inclusion import InclusionRules

__all__ = ["DecompipeConfig", "InclusionRules", "load_config", "resolve_paths"]
