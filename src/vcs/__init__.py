"""Version control of the generated source tree."""

from vcs.git import GitIdentity, GitRepository

__all__ = ["GitIdentity", "GitRepository"]
