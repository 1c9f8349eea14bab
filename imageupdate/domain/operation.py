"""
Operation result domain objects for imageupdate.

Provides standardized result types for the bulk update: one detail per
repository plus a run-level summary that collects the failures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .image import ImageReference


class OperationStatus(Enum):
    """Status of an individual repository update."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RunConfig:
    """Caller-facing options for one update run."""
    image: str
    tag: str
    store: Optional[str] = None
    org: Optional[str] = None
    branch: Optional[str] = None
    message: Optional[str] = None
    comment: Optional[str] = None

    @property
    def reference(self) -> ImageReference:
        return ImageReference(name=self.image, tag=self.tag)


@dataclass
class OperationDetail:
    """
    Details of the update of one repository.

    Used to track what happened to each repo during the run.
    """
    repo_name: str
    status: OperationStatus
    action: str  # e.g., "pull_request_opened", "not_a_fork", "update_failed"
    parent: Optional[str] = None
    branch: Optional[str] = None
    path: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'name': self.repo_name,
            'status': self.status.value,
            'action': self.action,
        }
        if self.parent:
            result['parent'] = self.parent
        if self.branch:
            result['branch'] = self.branch
        if self.path:
            result['path'] = self.path
        if self.message:
            result['message'] = self.message
        if self.error:
            result['error'] = self.error
        if self.metadata:
            result.update(self.metadata)
        return result


@dataclass
class RunResult:
    """
    Ordered outcome of one run across all candidate repositories.

    Failures keep the raised exception so the coordinator can re-raise
    the first one once every repository has been attempted.
    """
    image: Optional[str] = None
    tag: Optional[str] = None
    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    found: bool = True
    details: List[OperationDetail] = field(default_factory=list)
    exceptions: List[Exception] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if no failures occurred."""
        return self.failed == 0

    @property
    def errors(self) -> List[str]:
        return [f"{d.repo_name}: {d.error}" for d in self.details if d.error]

    def add_detail(self, detail: OperationDetail) -> None:
        """Add an operation detail and update counts."""
        self.details.append(detail)
        self.total += 1

        if detail.status == OperationStatus.SUCCESS:
            self.successful += 1
        elif detail.status == OperationStatus.SKIPPED:
            self.skipped += 1
        elif detail.status == OperationStatus.FAILED:
            self.failed += 1

    def add_failure(self, repo_name: str, exc: Exception, parent: Optional[str] = None) -> None:
        """Record a failed repository together with its exception."""
        self.exceptions.append(exc)
        self.add_detail(OperationDetail(
            repo_name=repo_name,
            status=OperationStatus.FAILED,
            action="update_failed",
            parent=parent,
            error=str(exc),
        ))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'type': 'summary',
            'image': self.image,
            'tag': self.tag,
            'found': self.found,
            'total': self.total,
            'successful': self.successful,
            'skipped': self.skipped,
            'failed': self.failed,
            'errors': self.errors,
        }
