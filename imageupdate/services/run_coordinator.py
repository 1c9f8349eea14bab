"""
Run coordinator service for imageupdate.

Sequences one bulk update: store, search, fork, list, then resolve and
apply per repository. A failing repository never stops the others; the
first failure is raised only after every repository has been attempted.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..domain import OperationDetail, OperationStatus, RunConfig, RunResult
from ..exit_codes import ForgeError
from ..infra.forge import ForgeClient
from .fork_coordinator import ForkCoordinator
from .image_locator import ImageLocator
from .repository_resolver import RepositoryResolver
from .store_service import create_store
from .update_applier import DEFAULT_PR_MESSAGE, UpdateApplier

logger = logging.getLogger(__name__)


class RunCoordinator:
    """
    Run the whole fork-and-update workflow for one image.

    Example:
        coordinator = RunCoordinator.from_config(client, config)
        try:
            result = coordinator.run(RunConfig(image="library/python", tag="3.12", store="image-store"))
        except UpdateError:
            result = coordinator.last_result
        print(f"Opened {result.successful} pull requests")
    """

    def __init__(
        self,
        client: ForgeClient,
        store=None,
        locator: Optional[ImageLocator] = None,
        forker: Optional[ForkCoordinator] = None,
        resolver: Optional[RepositoryResolver] = None,
        applier: Optional[UpdateApplier] = None,
    ):
        self.client = client
        self.store = store
        self.locator = locator or ImageLocator(client)
        self.forker = forker or ForkCoordinator(client)
        self.resolver = resolver or RepositoryResolver(client)
        self.applier = applier or UpdateApplier(client)
        self.last_result: Optional[RunResult] = None

    @classmethod
    def from_config(
        cls,
        client: ForgeClient,
        config: Dict[str, Any],
        sleep: Callable[[float], None] = time.sleep,
    ) -> 'RunCoordinator':
        """Build a coordinator with the timings and store backend from ``config``."""
        search = config.get('search', {})
        forks = config.get('forks', {})
        pull_request = config.get('pull_request', {})
        return cls(
            client,
            store=create_store(config, client),
            locator=ImageLocator(
                client,
                attempts=search.get('attempts', 5),
                delay=search.get('delay_seconds', 1.0),
                sleep=sleep,
            ),
            resolver=RepositoryResolver(
                client,
                wait_attempts=forks.get('wait_attempts', 60),
                wait_delay=forks.get('wait_delay_seconds', 1.0),
                sleep=sleep,
            ),
            applier=UpdateApplier(
                client,
                default_message=pull_request.get('default_message') or DEFAULT_PR_MESSAGE,
            ),
        )

    def update_store(self, options: RunConfig) -> None:
        if not options.store or self.store is None:
            logger.info("Image tag store not set. Skipping store update...")
            return
        logger.info("Updating store...")
        self.store.update(options.store, options.image, options.tag)

    def run(self, options: RunConfig) -> RunResult:
        """
        Update every repository whose Dockerfile uses ``options.image``.

        The store is updated first so later commands see the new tag even
        if this run fails.

        Returns:
            RunResult; ``found`` is False when the search never matched

        Raises:
            AuthError: If the acting user cannot be determined
            ForkError: If any fork fails (nothing is updated)
            UpdateError: The first per-repository failure, after all
                repositories were attempted. ``run_result`` is attached.
        """
        reference = options.reference
        result = RunResult(image=reference.name, tag=reference.tag)
        self.last_result = result

        logger.info(f"Updating Dockerfiles to {reference}")
        self.update_store(options)

        logger.info("Finding Dockerfiles with the given image...")
        outcome = self.locator.locate(options.image, options.org)
        if not outcome.found:
            result.found = False
            return result

        owner_path_map = self.forker.fork_all(outcome.contents)

        user = self.client.get_authenticated_user()
        repositories = self.resolver.get_repositories_for_user(owner_path_map, user)

        for handle in repositories:
            try:
                resolution = self.resolver.resolve(handle, owner_path_map)
                if resolution.skipped:
                    if resolution.reason == "not found":
                        result.add_detail(OperationDetail(
                            repo_name=handle.full_name,
                            status=OperationStatus.SKIPPED,
                            action="not_found",
                        ))
                    continue
                detail = self.applier.apply(
                    options, resolution.repository, resolution.parent, owner_path_map
                )
                result.add_detail(detail)
            except ForgeError as e:
                logger.warning(str(e))
                result.add_failure(handle.full_name, e)

        if result.exceptions:
            logger.info(f"There were {len(result.exceptions)} errors with changing Dockerfiles.")
            first = result.exceptions[0]
            first.run_result = result
            raise first

        return result
