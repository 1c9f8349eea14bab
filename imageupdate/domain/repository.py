"""
Repository domain objects for imageupdate.

These mirror the subset of forge API payloads the update workflow needs.
They are immutable and built from raw API dictionaries.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List


@dataclass(frozen=True)
class ForgeUser:
    """The authenticated forge account."""
    login: str

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'ForgeUser':
        return cls(login=data.get('login', ''))


@dataclass(frozen=True)
class RepositoryHandle:
    """
    Reference to a remote repository.

    ``parent`` is only populated when the repository was fetched
    individually; list endpoints do not include it.
    """
    full_name: str
    is_fork: bool = False
    default_branch: str = "main"
    parent: Optional['RepositoryHandle'] = None
    is_archived: bool = False
    html_url: Optional[str] = None

    @property
    def owner(self) -> str:
        return self.full_name.split('/', 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split('/', 1)[-1]

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'RepositoryHandle':
        """Create from a GitHub repository payload."""
        parent_data = data.get('parent')
        parent = cls.from_api_response(parent_data) if isinstance(parent_data, dict) else None

        full_name = data.get('full_name')
        if not full_name:
            owner = data.get('owner', {})
            login = owner.get('login', '') if isinstance(owner, dict) else str(owner)
            full_name = f"{login}/{data.get('name', '')}"

        return cls(
            full_name=full_name,
            is_fork=data.get('fork', False),
            default_branch=data.get('default_branch') or 'main',
            parent=parent,
            is_archived=data.get('archived', False),
            html_url=data.get('html_url'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'full_name': self.full_name,
            'is_fork': self.is_fork,
            'default_branch': self.default_branch,
            'parent': self.parent.full_name if self.parent else None,
            'is_archived': self.is_archived,
        }


@dataclass(frozen=True)
class ContentMatch:
    """One file returned by a code search."""
    path: str
    repository: RepositoryHandle
    sha: Optional[str] = None
    html_url: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'ContentMatch':
        return cls(
            path=data.get('path', ''),
            repository=RepositoryHandle.from_api_response(data.get('repository', {})),
            sha=data.get('sha'),
            html_url=data.get('html_url'),
        )


@dataclass
class ContentSet:
    """Result of a code search: the matches plus the total the forge reported."""
    items: List[ContentMatch] = field(default_factory=list)
    total_count: int = 0

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return self.total_count <= 0 and not self.items


@dataclass(frozen=True)
class FileContent:
    """A file fetched from a repository at a given branch."""
    repository: RepositoryHandle
    path: str
    branch: str
    sha: str
    text: str
