"""Class hierarchy views over an archive."""

from graph.hierarchy import ArchiveView, ClassSummary, package_of

__all__ = ["ArchiveView", "ClassSummary", "package_of"]
