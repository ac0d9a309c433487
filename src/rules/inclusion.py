"""Archive entry inclusion rules."""

from __future__ import annotations

from dataclasses import dataclass


def matches_prefix(entry: str, prefix: str) -> bool:
    """Match an archive entry against a directory or file prefix.

    A prefix ending in ``/`` selects everything below that directory; any
    other prefix selects the entry of that exact name and, if it is a
    directory, its contents.

    Examples:
        >>> matches_prefix("assets/lang/en_us.lang", "assets/")
        True
        >>> matches_prefix("log4j2.xml", "log4j2.xml")
        True
        >>> matches_prefix("log4j2.xml.bak", "log4j2.xml")
        False
    """
    if prefix.endswith("/"):
        return entry.startswith(prefix)
    return entry == prefix or entry.startswith(prefix + "/")


@dataclass(frozen=True)
class InclusionRules:
    """Prefix-set exclude and include lists evaluated in a fixed order.

    An entry matched by ``include`` is kept even if ``exclude`` matches it
    too; an entry matched only by ``exclude`` is dropped; everything else
    gets ``default``.
    """

    exclude: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    default: bool = True

    def accepts(self, entry: str) -> bool:
        if any(matches_prefix(entry, prefix) for prefix in self.include):
            return True
        if any(matches_prefix(entry, prefix) for prefix in self.exclude):
            return False
        return self.default


ACCEPT_ALL = InclusionRules()

# Libraries the server archive bundles; they are not remapped or decompiled.
BUNDLED_LIBRARY_PACKAGES = ("com/", "io/", "it/", "javax/", "org/")

SERVER_CLASS_RULES = InclusionRules(exclude=BUNDLED_LIBRARY_PACKAGES)
SERVER_RESOURCE_RULES = InclusionRules(
    include=("assets/", "log4j2.xml", "yggdrasil_session_pubkey.der"),
    default=False,
)

__all__ = [
    "ACCEPT_ALL",
    "BUNDLED_LIBRARY_PACKAGES",
    "SERVER_CLASS_RULES",
    "SERVER_RESOURCE_RULES",
    "InclusionRules",
    "matches_prefix",
]
