"""
Update applier service for imageupdate.

Rewrites the base image in one fork's Dockerfile and opens a pull
request back to the parent. Fetch, rewrite, commit and pull request are
one unit: any failure is reported as a single UpdateError.
"""

import logging
from typing import Dict, Optional

from ..dockerfile import rewrite_dockerfile
from ..domain import OperationDetail, OperationStatus, RepositoryHandle, RunConfig
from ..exit_codes import ForgeError, UpdateError
from ..infra.forge import ForgeClient, PullRequestResult

logger = logging.getLogger(__name__)

DEFAULT_PR_MESSAGE = "Automatic Dockerfile Image Updater"

_PR_OUTCOMES = {
    PullRequestResult.CREATED: (OperationStatus.SUCCESS, "pull_request_opened"),
    PullRequestResult.EXISTS: (OperationStatus.SKIPPED, "pull_request_exists"),
    PullRequestResult.NO_CHANGES: (OperationStatus.SKIPPED, "no_changes"),
}


def target_branch(repository: RepositoryHandle, branch: Optional[str] = None) -> str:
    """The explicit branch when given, else the repository's default branch."""
    return branch or repository.default_branch


def commit_message(config: RunConfig) -> str:
    message = f"Fix Dockerfile base image to {config.image}:{config.tag}"
    if config.comment:
        message += f"\n\n{config.comment}"
    return message


class UpdateApplier:
    """Apply the image update to one resolved fork."""

    def __init__(self, client: ForgeClient, default_message: str = DEFAULT_PR_MESSAGE):
        self.client = client
        self.default_message = default_message

    def apply(
        self,
        config: RunConfig,
        repository: RepositoryHandle,
        parent: RepositoryHandle,
        owner_path_map: Dict[str, str],
    ) -> OperationDetail:
        """
        Update ``repository`` and open a pull request into ``parent``.

        When the Dockerfile already points at the new tag nothing is
        committed; the pull request is still requested so a previously
        committed change gets one.

        Args:
            config: Run options (image, tag, branch, message, comment)
            repository: The user's fork, with parent linkage
            parent: Parent of ``repository``; must be a key of ``owner_path_map``
            owner_path_map: Parent full name -> Dockerfile path

        Returns:
            OperationDetail describing what happened

        Raises:
            UpdateError: If fetching, committing or opening the pull request fails
        """
        branch = target_branch(repository, config.branch)
        path = owner_path_map[parent.full_name]
        logger.info(f"Fixing Dockerfiles in {repository.full_name}...")

        try:
            content = self.client.get_file_content(repository, path, branch)
            rewrite = rewrite_dockerfile(content.text, config.image, config.tag)
            if rewrite.changed:
                self.client.update_file_content(content, branch, rewrite.text, commit_message(config))
            else:
                logger.info(f"{path} in {repository.full_name} already uses {config.image}:{config.tag}")

            result = self.client.open_pull_request(
                parent, branch, repository, config.message or self.default_message
            )
        except ForgeError as e:
            raise UpdateError(
                f"Failed to update {repository.full_name}: {e}",
                repository=repository.full_name,
            ) from e

        status, action = _PR_OUTCOMES[result]
        return OperationDetail(
            repo_name=repository.full_name,
            status=status,
            action=action,
            parent=parent.full_name,
            branch=branch,
            path=path,
            metadata={'lines_changed': len(rewrite.changed_lines)},
        )
