"""
Repository resolver service for imageupdate.

Turns the user's repository listing into the forks this run should
update. Listings carry no parent linkage and may be slightly stale, so
each fork is fetched again and a vanished repository is simply skipped.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Set

from ..domain import ForgeUser, RepositoryHandle
from ..exit_codes import AuthError, ForgeError, NotFoundError
from ..infra.forge import ForgeClient

logger = logging.getLogger(__name__)

DEFAULT_WAIT_ATTEMPTS = 60
DEFAULT_WAIT_DELAY_SECONDS = 1.0


@dataclass(frozen=True)
class Resolution:
    """A fork with its parent, or the reason it was skipped."""
    repository: Optional[RepositoryHandle] = None
    parent: Optional[RepositoryHandle] = None
    reason: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.repository is None

    @classmethod
    def skip(cls, reason: str) -> 'Resolution':
        return cls(reason=reason)


def _fork_name_pattern(parent_full_name: str) -> re.Pattern:
    # GitHub appends -1, -2, ... when the user already owns the name
    repo_name = parent_full_name.split('/', 1)[-1]
    return re.compile(rf"^{re.escape(repo_name)}(-\d+)?$", re.IGNORECASE)


def candidate_forks(owner_path_map: Dict[str, str], repositories: List[RepositoryHandle]) -> List[RepositoryHandle]:
    """
    Forks in ``repositories`` whose name could belong to a parent in ``owner_path_map``.

    A name match alone does not link a fork to a parent: two parents can
    share a repository name, and the user may already own an unrelated
    fork with that name. Candidates still have to be fetched.
    """
    patterns = [_fork_name_pattern(parent) for parent in owner_path_map]
    return [
        repo for repo in repositories
        if repo.is_fork and any(pattern.match(repo.name) for pattern in patterns)
    ]


class RepositoryResolver:
    """
    Find the user's forks and link them back to their parents.

    Forks fetched while waiting for the listing are remembered, so
    ``resolve`` does not fetch them a second time.

    Example:
        resolver = RepositoryResolver(client)
        for repo in resolver.get_repositories_for_user(owner_path_map, user):
            resolution = resolver.resolve(repo, owner_path_map)
            if not resolution.skipped:
                print(resolution.repository.full_name, "->", resolution.parent.full_name)
    """

    def __init__(
        self,
        client: ForgeClient,
        wait_attempts: int = DEFAULT_WAIT_ATTEMPTS,
        wait_delay: float = DEFAULT_WAIT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.wait_attempts = max(1, wait_attempts)
        self.wait_delay = wait_delay
        self.sleep = sleep
        self._fetched: Dict[str, RepositoryHandle] = {}

    def _fetch(self, full_name: str) -> RepositoryHandle:
        repository = self._fetched.get(full_name)
        if repository is None:
            logger.info(f"Re-retrieving repo {full_name}...")
            repository = self.client.get_repository(full_name)
            self._fetched[full_name] = repository
        return repository

    def unmatched_parents(
        self,
        owner_path_map: Dict[str, str],
        repositories: List[RepositoryHandle],
    ) -> List[str]:
        """Parents in ``owner_path_map`` that no fork in ``repositories`` links back to."""
        linked: Set[str] = set()
        for handle in candidate_forks(owner_path_map, repositories):
            try:
                repository = self._fetch(handle.full_name)
            except ForgeError as e:
                # Retried on the next listing, and again when resolving
                logger.debug(f"Could not fetch {handle.full_name} yet: {e}")
                continue
            if repository.parent is not None:
                linked.add(repository.parent.full_name)
        return [parent for parent in owner_path_map if parent not in linked]

    def get_repositories_for_user(
        self,
        owner_path_map: Dict[str, str],
        user: Optional[ForgeUser],
    ) -> List[RepositoryHandle]:
        """
        List the user's repositories once every expected fork shows up.

        Forks are created asynchronously and may be renamed, so the
        listing is repeated until every parent in ``owner_path_map`` has
        a listed fork whose fetched parent is that parent. When waiting
        runs out the latest listing is returned anyway.

        Raises:
            AuthError: If ``user`` is None
        """
        if user is None:
            raise AuthError("Could not retrieve authenticated user.")

        self._fetched = {}
        repositories: List[RepositoryHandle] = []
        missing: List[str] = []
        for attempt in range(1, self.wait_attempts + 1):
            repositories = self.client.list_repositories_for_user(user)
            missing = self.unmatched_parents(owner_path_map, repositories)
            if not missing:
                return repositories
            if attempt < self.wait_attempts:
                logger.info(f"Forking is still in progress for {len(missing)} repositories...")
                self.sleep(self.wait_delay)

        logger.warning(f"Forks not listed yet for {', '.join(sorted(missing))}; continuing")
        return repositories

    def resolve(self, handle: RepositoryHandle, owner_path_map: Dict[str, str]) -> Resolution:
        """
        Re-fetch a listed repository to find its parent.

        Args:
            handle: Repository from the user's listing
            owner_path_map: Parents this run is responsible for

        Returns:
            Resolution; skipped when ``handle`` is not a fork, has vanished,
            or its parent is not one of ours
        """
        if not handle.is_fork:
            return Resolution.skip("not a fork")

        try:
            repository = self._fetch(handle.full_name)
        except NotFoundError:
            # The listing can be cached for up to a minute after deletions
            logger.warning(
                f"Repository {handle.full_name} no longer exists; the repository list is "
                "outdated but still holds every fork needed, so it is ignored."
            )
            return Resolution.skip("not found")

        parent = repository.parent
        if parent is None or parent.full_name not in owner_path_map:
            return Resolution.skip("parent not targeted")

        logger.info(f"Found repo {repository.full_name}.")
        return Resolution(repository=repository, parent=parent)
