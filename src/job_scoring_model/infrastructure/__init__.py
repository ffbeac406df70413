"""Infrastructure implementations of protocols."""

from .filesystem import LocalFileSystem
from .submissions import InMemorySubmissionStore

__all__ = [
    "InMemorySubmissionStore",
    "LocalFileSystem",
]
