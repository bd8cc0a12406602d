"""
Repository sources

Lists and clones the repositories that make up the distribution.
"""

from distbuild.sources.github import (
    Repository,
    clone_repositories,
    clone_repository,
    list_repositories,
)

__all__ = [
    "Repository",
    "clone_repositories",
    "clone_repository",
    "list_repositories",
]
