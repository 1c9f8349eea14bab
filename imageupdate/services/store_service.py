"""
Image tag store for imageupdate.

Remembers the latest tag of every image updated so other tooling can
look it up. The store is a JSON document of the form::

    {"images": {"library/python": "3.12"}}

Two backends share that format:
- ForgeStore: ``store.json`` in a repository owned by the acting user
- LocalStore: a JSON file on disk
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..exit_codes import AuthError, ConfigError, NotFoundError
from ..infra.file_store import FileStore
from ..infra.forge import ForgeClient

logger = logging.getLogger(__name__)

STORE_FILE = "store.json"


def _dumps(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, sort_keys=True) + "\n"


def store_commit_message(image: str, tag: str) -> str:
    return f"Updated image {image} with tag {tag}."


class ForgeStore:
    """Store kept in a repository named ``store_id`` under the acting user."""

    def __init__(self, client: ForgeClient):
        self.client = client

    def update(self, store_id: str, image: str, tag: str) -> None:
        user = self.client.get_authenticated_user()
        if user is None:
            raise AuthError("Could not retrieve authenticated user.")

        full_name = f"{user.login}/{store_id}"
        try:
            repository = self.client.get_repository(full_name)
        except NotFoundError:
            logger.info(f"Store {full_name} does not exist, creating it...")
            repository = self.client.create_repository(store_id)

        branch = repository.default_branch
        message = store_commit_message(image, tag)
        try:
            # Missing on a fresh store
            content = self.client.get_file_content(repository, STORE_FILE, branch, retries=1)
        except NotFoundError:
            self.client.create_file(
                repository, STORE_FILE, _dumps({'images': {image: tag}}), message, branch
            )
            return

        try:
            document = json.loads(content.text) if content.text.strip() else {}
        except ValueError:
            logger.warning(f"{STORE_FILE} in {full_name} is not valid JSON, rewriting it")
            document = {}
        if not isinstance(document, dict):
            document = {}

        images = document.setdefault('images', {})
        if images.get(image) == tag:
            logger.info(f"Store already records {image}:{tag}")
            return
        images[image] = tag
        self.client.update_file_content(content, branch, _dumps(document), message)


class LocalStore:
    """Store kept in a local JSON file; ``store_id`` is its path."""

    def update(self, store_id: str, image: str, tag: str) -> None:
        store = FileStore(Path(store_id))
        images = store.get('images', {})
        if not isinstance(images, dict):
            images = {}
        images[image] = tag
        store.set('images', images)


def create_store(config: Dict[str, Any], client: ForgeClient):
    """Pick the store backend named by ``store.backend``."""
    backend = config.get('store', {}).get('backend', 'forge')
    if backend == 'forge':
        return ForgeStore(client)
    if backend == 'local':
        return LocalStore()
    raise ConfigError(f"Unknown store backend: {backend}")
