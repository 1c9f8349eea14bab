"""
Shared fixtures: an in-memory forge that behaves like GitHub for the
parts of the API the update workflow uses.
"""

import hashlib
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

import pytest

from imageupdate.domain import ContentMatch, ContentSet, FileContent, ForgeUser, RepositoryHandle
from imageupdate.exit_codes import ForgeAPIError, NotFoundError
from imageupdate.infra.forge import ForgeClient, PullRequestResult


def dockerfile(image: str, extra: str = "RUN make\n") -> str:
    return f"FROM {image}\n{extra}"


class FakeForge(ForgeClient):
    """
    In-memory forge.

    Forks get GitHub's collision renaming (``name-1``), listings omit
    parent linkage, and pull requests are deduplicated per head branch.
    ``listing_delays[name] = n`` hides a repository from its first n listings.
    """

    def __init__(self, login: Optional[str] = "me"):
        self.login = login
        self.repos: Dict[str, RepositoryHandle] = {}
        self.files: Dict[Tuple[str, str, str], str] = {}
        self.search_queue: List[ContentSet] = []
        self.search_result: Optional[ContentSet] = None
        self.deleted: Set[str] = set()
        self.fail: Dict[str, Set[str]] = defaultdict(set)
        self.calls: Dict[str, list] = defaultdict(list)
        self.commits: Dict[Tuple[str, str], int] = defaultdict(int)
        self.open_pulls: Set[Tuple[str, str, str]] = set()
        self.listing_delays: Dict[str, int] = {}

    # -- setup helpers -------------------------------------------------

    def add_repo(self, full_name: str, files: Optional[Dict[str, str]] = None,
                 default_branch: str = "main", parent: Optional[str] = None) -> RepositoryHandle:
        handle = RepositoryHandle(
            full_name=full_name,
            is_fork=parent is not None,
            default_branch=default_branch,
            parent=self.repos[parent] if parent else None,
        )
        self.repos[full_name] = handle
        for path, text in (files or {}).items():
            self.files[(full_name, default_branch, path)] = text
        return handle

    def set_search(self, *matches: Tuple[str, str]) -> ContentSet:
        """Make every search return ``(full_name, path)`` matches."""
        items = [ContentMatch(path=path, repository=self.repos[name]) for name, path in matches]
        self.search_result = ContentSet(items=items, total_count=len(items))
        return self.search_result

    def pulls_for(self, parent: str) -> int:
        return sum(1 for call in self.calls['open_pull_request'] if call[0] == parent)

    def _check_fail(self, op: str, name: str) -> None:
        if name in self.fail[op]:
            raise ForgeAPIError(f"{op} failed for {name}", status_code=500)

    # -- ForgeClient ---------------------------------------------------

    def search_content_by_image(self, image, org=None):
        self.calls['search'].append((image, org))
        if self.search_queue:
            return self.search_queue.pop(0)
        return self.search_result or ContentSet()

    def get_authenticated_user(self):
        self.calls['user'].append(True)
        return ForgeUser(self.login) if self.login else None

    def fork_repository(self, repository):
        self.calls['fork'].append(repository.full_name)
        self._check_fail('fork', repository.full_name)
        parent = self.repos[repository.full_name]

        for handle in self.repos.values():
            if handle.owner == self.login and handle.parent and handle.parent.full_name == parent.full_name:
                return

        name = f"{self.login}/{parent.name}"
        suffix = 0
        while name in self.repos:
            suffix += 1
            name = f"{self.login}/{parent.name}-{suffix}"

        self.repos[name] = RepositoryHandle(
            full_name=name, is_fork=True, default_branch=parent.default_branch, parent=parent
        )
        for (repo, branch, path), text in list(self.files.items()):
            if repo == parent.full_name:
                self.files[(name, branch, path)] = text

    def list_repositories_for_user(self, user):
        self.calls['list'].append(user.login)
        prefix = f"{user.login}/"
        listed = []
        for name, handle in self.repos.items():
            if not name.startswith(prefix):
                continue
            if self.listing_delays.get(name, 0) > 0:
                self.listing_delays[name] -= 1
                continue
            listed.append(replace(handle, parent=None))
        return listed

    def get_repository(self, full_name):
        self.calls['get_repository'].append(full_name)
        if full_name in self.deleted or full_name not in self.repos:
            raise NotFoundError(f"Not found on GitHub: repos/{full_name}")
        self._check_fail('get_repository', full_name)
        return self.repos[full_name]

    def get_file_content(self, repository, path, branch, retries=None):
        self.calls['get_file_content'].append((repository.full_name, path, branch))
        self.calls['get_file_content_retries'].append(retries)
        self._check_fail('get_file_content', repository.full_name)
        key = (repository.full_name, branch, path)
        if key not in self.files:
            raise NotFoundError(f"Not found on GitHub: {path}")
        text = self.files[key]
        return FileContent(
            repository=repository, path=path, branch=branch,
            sha=hashlib.sha1(text.encode()).hexdigest(), text=text,
        )

    def update_file_content(self, content, branch, new_text, message):
        name = content.repository.full_name
        self.calls['update_file_content'].append((name, branch, message))
        self._check_fail('update_file_content', name)
        self.files[(name, branch, content.path)] = new_text
        self.commits[(name, branch)] += 1

    def open_pull_request(self, parent, branch, head, message):
        self.calls['open_pull_request'].append((parent.full_name, head.full_name, branch, message))
        self._check_fail('open_pull_request', head.full_name)
        key = (parent.full_name, head.full_name, branch)
        if key in self.open_pulls:
            return PullRequestResult.EXISTS
        if not self.commits[(head.full_name, branch)]:
            return PullRequestResult.NO_CHANGES
        self.open_pulls.add(key)
        return PullRequestResult.CREATED

    def create_repository(self, name):
        self.calls['create_repository'].append(name)
        return self.add_repo(f"{self.login}/{name}")

    def create_file(self, repository, path, text, message, branch=None):
        self.calls['create_file'].append((repository.full_name, path, message))
        self.files[(repository.full_name, branch or repository.default_branch, path)] = text


@pytest.fixture
def forge():
    return FakeForge()


@pytest.fixture
def delays():
    """Records delays; pass ``delays.append`` wherever a sleep function is taken."""
    return []
