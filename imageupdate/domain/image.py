"""
Image reference domain object for imageupdate.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageReference:
    """A container image name and the tag to pin it to."""
    name: str
    tag: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Image name cannot be empty")
        if not self.tag:
            raise ValueError("Image tag cannot be empty")

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"
