"""
Domain layer for imageupdate.

Contains pure domain objects with no I/O or side effects:
- ImageReference: Image name and tag to pin
- RepositoryHandle, ContentMatch, ContentSet, FileContent, ForgeUser:
  the forge objects the workflow reads
- RunConfig, OperationDetail, RunResult: run options and outcomes

These objects are immutable where possible and provide
serialization methods for JSONL output.
"""

from .image import ImageReference
from .repository import (
    ContentMatch,
    ContentSet,
    FileContent,
    ForgeUser,
    RepositoryHandle,
)
from .operation import OperationDetail, OperationStatus, RunConfig, RunResult

__all__ = [
    'ImageReference',
    'ContentMatch',
    'ContentSet',
    'FileContent',
    'ForgeUser',
    'RepositoryHandle',
    'OperationDetail',
    'OperationStatus',
    'RunConfig',
    'RunResult',
]
