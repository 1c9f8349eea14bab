"""
Forge client interface for imageupdate.

The update services only talk to the forge through this interface, so
they can be exercised against an in-memory implementation in tests.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from ..domain import ContentSet, FileContent, ForgeUser, RepositoryHandle


class PullRequestResult(Enum):
    """What happened when a pull request was requested."""
    CREATED = "created"
    EXISTS = "exists"          # An open pull request for the same head already exists
    NO_CHANGES = "no_changes"  # Head has no commits the base does not have


class ForgeClient(ABC):
    """Operations the update workflow needs from a hosted forge."""

    @abstractmethod
    def search_content_by_image(self, image: str, org: Optional[str] = None) -> ContentSet:
        """Find Dockerfiles whose FROM lines reference ``image``."""

    @abstractmethod
    def get_authenticated_user(self) -> Optional[ForgeUser]:
        """Return the acting user, or None when it cannot be determined."""

    @abstractmethod
    def fork_repository(self, repository: RepositoryHandle) -> None:
        """Fork ``repository`` under the acting user. The new fork is not returned."""

    @abstractmethod
    def list_repositories_for_user(self, user: ForgeUser) -> List[RepositoryHandle]:
        """List repositories owned by ``user``. Parent linkage is not populated."""

    @abstractmethod
    def get_repository(self, full_name: str) -> RepositoryHandle:
        """Fetch one repository with its parent. Raises NotFoundError."""

    @abstractmethod
    def get_file_content(
        self,
        repository: RepositoryHandle,
        path: str,
        branch: str,
        retries: Optional[int] = None,
    ) -> FileContent:
        """
        Fetch a file at ``branch``. Raises NotFoundError.

        ``retries`` bounds the attempts made while the file is missing;
        None uses the client default.
        """

    @abstractmethod
    def update_file_content(self, content: FileContent, branch: str, new_text: str, message: str) -> None:
        """Commit ``new_text`` over ``content`` on ``branch``."""

    @abstractmethod
    def open_pull_request(
        self,
        parent: RepositoryHandle,
        branch: str,
        head: RepositoryHandle,
        message: str,
    ) -> PullRequestResult:
        """Open a pull request from ``head:branch`` into ``parent``."""

    @abstractmethod
    def create_repository(self, name: str) -> RepositoryHandle:
        """Create a repository under the acting user."""

    @abstractmethod
    def create_file(
        self,
        repository: RepositoryHandle,
        path: str,
        text: str,
        message: str,
        branch: Optional[str] = None,
    ) -> None:
        """Create a new file in ``repository``."""
