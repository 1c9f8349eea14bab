"""
Fork coordinator service for imageupdate.

Forks every repository that owns a matching Dockerfile before any file
is edited. A new fork can take a while to receive its parent's content,
so doing all forks first gives each one time to catch up.
"""

import logging
from typing import Dict, Iterable

from ..domain import ContentMatch
from ..exit_codes import ForgeError, ForkError
from ..infra.forge import ForgeClient

logger = logging.getLogger(__name__)


class ForkCoordinator:
    """
    Fork each distinct owning repository once.

    Only the parent's full name is remembered, never the fork the forge
    hands back: GitHub renames a fork (``name-1``) when the user already
    owns a repository with that name, so the real forks are found later
    by listing the user's repositories and matching on parent.
    """

    def __init__(self, client: ForgeClient):
        self.client = client
        self.owner_path_map: Dict[str, str] = {}

    def fork_all(self, contents: Iterable[ContentMatch]) -> Dict[str, str]:
        """
        Fork the owners of ``contents``.

        Args:
            contents: Search matches

        Returns:
            Mapping of parent full name to the Dockerfile path found in it

        Raises:
            ForkError: If any fork request fails
        """
        logger.info("Forking repositories...")
        self.owner_path_map = {}

        for match in contents:
            parent = match.repository
            if parent.full_name in self.owner_path_map:
                logger.debug(f"{parent.full_name} already forked, ignoring {match.path}")
                continue

            logger.info(f"Forking {parent.full_name}...")
            # Recorded before forking so the map is complete for everything attempted
            self.owner_path_map[parent.full_name] = match.path
            try:
                self.client.fork_repository(parent)
            except ForgeError as e:
                raise ForkError(
                    f"Could not fork {parent.full_name}: {e}",
                    repository=parent.full_name,
                ) from e

        return dict(self.owner_path_map)
