"""
Infrastructure layer for imageupdate.

Contains abstractions for external systems:
- ForgeClient: The forge operations the update workflow relies on
- GitHubClient: GitHub REST implementation of ForgeClient
- FileStore: Local JSON file persistence

These provide clean interfaces that can be mocked for testing.
"""

from .forge import ForgeClient, PullRequestResult
from .github_client import GitHubClient, RateLimitStatus
from .file_store import FileStore

__all__ = [
    'ForgeClient',
    'PullRequestResult',
    'GitHubClient',
    'RateLimitStatus',
    'FileStore',
]
