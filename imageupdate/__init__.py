"""
imageupdate - Bulk base image updates for Dockerfiles on GitHub.

Given an image and a new tag, imageupdate finds every Dockerfile that
builds on the image, forks the owning repositories, rewrites the FROM
line in each fork and opens a pull request back to the original.

Quick Start:
    from imageupdate import GitHubClient, RunConfig, RunCoordinator, load_config

    config = load_config()
    client = GitHubClient.from_config(config)
    coordinator = RunCoordinator.from_config(client, config)
    result = coordinator.run(RunConfig(image="myorg/base", tag="2.0", store="image-store"))
    print(result.successful, "pull requests opened")

Phases:
    1. Record the new tag in the image store
    2. Search for Dockerfiles using the image (retried while the index catches up)
    3. Fork every owning repository
    4. List the user's forks, link each to its parent, update and open a PR
"""

__version__ = "0.1.0"

from .domain import (
    ImageReference,
    RepositoryHandle,
    ContentMatch,
    ContentSet,
    FileContent,
    ForgeUser,
    OperationDetail,
    OperationStatus,
    RunConfig,
    RunResult,
)
from .infra import ForgeClient, GitHubClient, PullRequestResult
from .services import (
    ImageLocator,
    ForkCoordinator,
    RepositoryResolver,
    UpdateApplier,
    RunCoordinator,
)
from .config import load_config, save_config

__all__ = [
    "__version__",
    "ImageReference",
    "RepositoryHandle",
    "ContentMatch",
    "ContentSet",
    "FileContent",
    "ForgeUser",
    "OperationDetail",
    "OperationStatus",
    "RunConfig",
    "RunResult",
    "ForgeClient",
    "GitHubClient",
    "PullRequestResult",
    "ImageLocator",
    "ForkCoordinator",
    "RepositoryResolver",
    "UpdateApplier",
    "RunCoordinator",
    "load_config",
    "save_config",
]
