"""
Image locator service for imageupdate.

Finds the Dockerfiles that reference an image. Code search indexes lag
behind pushes, so an empty result is retried a few times before the
image is declared not found.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..domain import ContentSet
from ..infra.forge import ForgeClient

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 5
DEFAULT_DELAY_SECONDS = 1.0


class SearchStatus(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass
class SearchOutcome:
    """Tagged result of a search: the matches, or a clean not-found."""
    status: SearchStatus
    contents: ContentSet = field(default_factory=ContentSet)
    attempts: int = 0

    @property
    def found(self) -> bool:
        return self.status == SearchStatus.FOUND


class ImageLocator:
    """
    Search for files referencing an image with bounded retry.

    Example:
        locator = ImageLocator(client)
        outcome = locator.locate("library/python", org="myorg")
        if outcome.found:
            for match in outcome.contents:
                print(match.repository.full_name, match.path)
    """

    def __init__(
        self,
        client: ForgeClient,
        attempts: int = DEFAULT_ATTEMPTS,
        delay: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.attempts = max(1, attempts)
        self.delay = delay
        self.sleep = sleep

    def locate(self, image: str, org: Optional[str] = None) -> SearchOutcome:
        """
        Search until a non-empty result is seen or attempts run out.

        Args:
            image: Image name without tag
            org: Optional user or organization to scope the search to

        Returns:
            SearchOutcome with status FOUND or NOT_FOUND
        """
        contents = ContentSet()
        for attempt in range(1, self.attempts + 1):
            contents = self.client.search_content_by_image(image, org)
            if not contents.is_empty:
                logger.info(f"Found {contents.total_count} Dockerfiles referencing {image}")
                return SearchOutcome(SearchStatus.FOUND, contents, attempt)

            if attempt < self.attempts:
                logger.debug(f"No results for {image} yet (attempt {attempt}/{self.attempts})")
                self.sleep(self.delay)

        logger.info("Could not find any repositories with given image.")
        return SearchOutcome(SearchStatus.NOT_FOUND, contents, self.attempts)
