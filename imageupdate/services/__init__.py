"""
Service layer for imageupdate.

Contains the workflow logic that orchestrates domain objects and the forge:
- ImageLocator: Search for Dockerfiles using an image
- ForkCoordinator: Fork every owning repository
- RepositoryResolver: Find the user's forks and their parents
- UpdateApplier: Rewrite, commit and open a pull request
- RunCoordinator: Sequence a whole run and aggregate failures
- ForgeStore / LocalStore: Record the latest tag per image
"""

from .image_locator import ImageLocator, SearchOutcome, SearchStatus
from .fork_coordinator import ForkCoordinator
from .repository_resolver import RepositoryResolver, Resolution
from .update_applier import UpdateApplier
from .run_coordinator import RunCoordinator
from .store_service import ForgeStore, LocalStore, create_store

__all__ = [
    'ImageLocator',
    'SearchOutcome',
    'SearchStatus',
    'ForkCoordinator',
    'RepositoryResolver',
    'Resolution',
    'UpdateApplier',
    'RunCoordinator',
    'ForgeStore',
    'LocalStore',
    'create_store',
]
