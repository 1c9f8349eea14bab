"""
GitHub API client infrastructure for imageupdate.

Implements the ForgeClient interface over the GitHub REST v3 API:
- Uses a token from the environment, falling back to the `gh` CLI
- Tracks rate limits from response headers
- Handles rate limiting with exponential backoff
- Retries file fetches on freshly created forks
"""

import base64
import logging
import os
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from ..domain import ContentMatch, ContentSet, FileContent, ForgeUser, RepositoryHandle
from ..exit_codes import ForgeAPIError, ForgeError, NotFoundError
from .forge import ForgeClient, PullRequestResult

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"

# GitHub caps page size at 100 and code search results at 1000
PAGE_SIZE = 100
MAX_SEARCH_RESULTS = 1000

DEFAULT_PR_BODY = "Automatic Dockerfile Image Updater. Please merge."


@dataclass
class RateLimitStatus:
    """GitHub API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def reset_datetime(self) -> datetime:
        """Get reset time as datetime."""
        return datetime.fromtimestamp(self.reset_time)

    @property
    def minutes_until_reset(self) -> int:
        """Minutes until rate limit resets."""
        now = int(time.time())
        return max(0, (self.reset_time - now) // 60)

    @property
    def is_low(self) -> bool:
        """Check if rate limit is getting low (< 100 remaining)."""
        return self.remaining < 100


def _token_from_gh_cli() -> Optional[str]:
    """Ask an authenticated `gh` CLI for its token."""
    try:
        result = subprocess.run(
            ['gh', 'auth', 'token'],
            capture_output=True,
            text=True,
            timeout=10
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return None
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()
    return None


def _error_text(response: requests.Response) -> str:
    """Collect the message and validation errors from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or ''
    if not isinstance(data, dict):
        return str(data)
    parts = [data.get('message', '')]
    for error in data.get('errors', []) or []:
        if isinstance(error, dict):
            parts.append(error.get('message', ''))
        else:
            parts.append(str(error))
    return '; '.join(p for p in parts if p)


class GitHubClient(ForgeClient):
    """
    GitHub API client with rate limiting.

    Example:
        client = GitHubClient()
        found = client.search_content_by_image("library/python", org="myorg")
        for match in found:
            print(match.repository.full_name, match.path)
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_API_URL,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        content_retries: int = 10,
        content_retry_delay: float = 1.0,
        pull_request_body: str = DEFAULT_PR_BODY,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token (defaults to IMAGEUPDATE_GITHUB_TOKEN, GITHUB_TOKEN, then `gh auth token`)
            api_url: API base URL (change for GitHub Enterprise)
            max_retries: Maximum retry attempts for rate-limited requests
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            content_retries: Attempts to fetch a file that may not have replicated to a new fork
            content_retry_delay: Fixed delay between those attempts
            pull_request_body: Body text of opened pull requests
            timeout: HTTP request timeout in seconds
            session: requests session to use (created if None)
            sleep: Delay function, replaceable in tests
        """
        self.token = (
            token
            or os.environ.get('IMAGEUPDATE_GITHUB_TOKEN')
            or os.environ.get('GITHUB_TOKEN')
            or _token_from_gh_cli()
        )
        self.api_url = api_url.rstrip('/')
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.content_retries = max(1, content_retries)
        self.content_retry_delay = content_retry_delay
        self.pull_request_body = pull_request_body
        self.timeout = timeout
        self.sleep = sleep
        self._rate_limit_status: Optional[RateLimitStatus] = None

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'imageupdate',
        })
        if self.token:
            self.session.headers['Authorization'] = f'token {self.token}'

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs) -> 'GitHubClient':
        """Build a client from the ``github`` section of the configuration."""
        github = config.get('github', {})
        rate_limit = github.get('rate_limit', {})
        return cls(
            token=github.get('token') or None,
            api_url=github.get('api_url') or DEFAULT_API_URL,
            max_retries=rate_limit.get('max_retries', 3),
            max_delay=rate_limit.get('max_delay_seconds', 60),
            content_retries=github.get('content_retries', 10),
            content_retry_delay=github.get('content_retry_delay_seconds', 1.0),
            pull_request_body=config.get('pull_request', {}).get('body') or DEFAULT_PR_BODY,
            **kwargs
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _update_rate_limit_from_headers(self, headers) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used
            )

            if self._rate_limit_status.is_low:
                logger.warning(
                    f"GitHub API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    def get_rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status seen on the last API call, if any."""
        return self._rate_limit_status

    @staticmethod
    def _is_rate_limited(response: requests.Response) -> bool:
        if response.status_code not in (403, 429):
            return False
        if response.headers.get('X-RateLimit-Remaining') == '0':
            return True
        return 'rate limit' in (response.text or '').lower()

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith('http'):
            return endpoint
        return f"{self.api_url}/{endpoint.lstrip('/')}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """Send one request, backing off while rate limited."""
        url = self._url(endpoint)

        for attempt in range(self.max_retries):
            try:
                response = self.session.request(
                    method, url, params=params, json=json_body, timeout=self.timeout
                )
            except requests.RequestException as e:
                logger.warning(f"GitHub API request failed: {e}")
                if attempt < self.max_retries - 1:
                    self.sleep(min(self.base_delay * (2 ** attempt), self.max_delay))
                    continue
                raise ForgeAPIError(f"GitHub API request failed for {endpoint}: {e}") from e

            self._update_rate_limit_from_headers(response.headers)

            if not self._is_rate_limited(response):
                return response

            if attempt == self.max_retries - 1:
                break

            reset_time = response.headers.get('X-RateLimit-Reset')
            if reset_time:
                wait_time = int(reset_time) - int(time.time())
                if 0 < wait_time < self.max_delay:
                    logger.info(f"Rate limited, waiting {wait_time}s")
                    self.sleep(wait_time)
                    continue

            delay = min(self.base_delay * (2 ** attempt), self.max_delay)
            logger.info(f"Rate limited, waiting {delay}s (attempt {attempt + 1})")
            self.sleep(delay)

        raise ForgeAPIError(f"GitHub API rate limit exceeded for {endpoint}", status_code=403)

    def _api(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body, raising on errors."""
        response = self._request(method, endpoint, params=params, json_body=json_body)

        if response.status_code == 404:
            raise NotFoundError(f"Not found on GitHub: {endpoint}")
        if response.status_code >= 400:
            raise ForgeAPIError(
                f"GitHub API error {response.status_code} for {endpoint}: {_error_text(response)}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ForgeAPIError(f"GitHub API returned invalid JSON for {endpoint}") from e

    def _paged(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Collect every item of a list endpoint."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_params = dict(params or {}, per_page=PAGE_SIZE, page=page)
            data = self._api('GET', endpoint, params=page_params)
            if not data:
                break
            items.extend(data)
            if len(data) < PAGE_SIZE:
                break
            page += 1
        return items

    @staticmethod
    def _contents_endpoint(repository: RepositoryHandle, path: str) -> str:
        return f"repos/{repository.full_name}/contents/{quote(path.lstrip('/'))}"

    # ------------------------------------------------------------------
    # ForgeClient
    # ------------------------------------------------------------------

    def search_content_by_image(self, image: str, org: Optional[str] = None) -> ContentSet:
        """
        Search Dockerfiles for ``FROM <image>``.

        Paginates until the reported total (or GitHub's 1000 result cap)
        is reached.

        Args:
            image: Image name without tag
            org: Restrict the search to one user or organization

        Returns:
            ContentSet with every match and the reported total
        """
        query = f'"FROM {image}" filename:Dockerfile'
        if org:
            query += f" user:{org}"

        result = ContentSet()
        page = 1
        while True:
            data = self._api('GET', 'search/code', params={
                'q': query,
                'per_page': PAGE_SIZE,
                'page': page,
            })
            result.total_count = data.get('total_count', 0)
            items = data.get('items', [])
            result.items.extend(ContentMatch.from_api_response(item) for item in items)

            seen = len(result.items)
            if not items or seen >= result.total_count or seen >= MAX_SEARCH_RESULTS:
                break
            page += 1

        logger.debug(f"Search for {image} returned {result.total_count} results")
        return result

    def get_authenticated_user(self) -> Optional[ForgeUser]:
        try:
            data = self._api('GET', 'user')
        except ForgeError as e:
            logger.warning(f"Could not fetch authenticated user: {e}")
            return None
        user = ForgeUser.from_api_response(data)
        return user if user.login else None

    def fork_repository(self, repository: RepositoryHandle) -> None:
        # GitHub answers 202 and creates the fork asynchronously
        self._api('POST', f"repos/{repository.full_name}/forks")

    def list_repositories_for_user(self, user: ForgeUser) -> List[RepositoryHandle]:
        data = self._paged('user/repos', params={'affiliation': 'owner'})
        return [RepositoryHandle.from_api_response(item) for item in data]

    def get_repository(self, full_name: str) -> RepositoryHandle:
        return RepositoryHandle.from_api_response(self._api('GET', f"repos/{full_name}"))

    def get_file_content(
        self,
        repository: RepositoryHandle,
        path: str,
        branch: str,
        retries: Optional[int] = None,
    ) -> FileContent:
        """
        Fetch and decode a file.

        A fork's content can lag behind its creation, so 404s are retried
        with a fixed delay before giving up. Pass ``retries=1`` for files
        that may legitimately not exist.
        """
        endpoint = self._contents_endpoint(repository, path)
        attempts = max(1, retries) if retries is not None else self.content_retries
        for attempt in range(attempts):
            try:
                data = self._api('GET', endpoint, params={'ref': branch})
                break
            except NotFoundError:
                if attempt == attempts - 1:
                    raise
                logger.warning(
                    f"Content {path} in {repository.full_name} not available yet, retrying..."
                )
                self.sleep(self.content_retry_delay)

        if not isinstance(data, dict) or data.get('type', 'file') != 'file':
            raise ForgeAPIError(f"{path} in {repository.full_name} is not a file")

        raw = data.get('content', '')
        try:
            text = base64.b64decode(raw).decode('utf-8')
        except (ValueError, UnicodeDecodeError) as e:
            raise ForgeAPIError(f"Could not decode {path} in {repository.full_name}") from e

        return FileContent(
            repository=repository,
            path=data.get('path', path),
            branch=branch,
            sha=data.get('sha', ''),
            text=text,
        )

    def update_file_content(self, content: FileContent, branch: str, new_text: str, message: str) -> None:
        self._api('PUT', self._contents_endpoint(content.repository, content.path), json_body={
            'message': message,
            'content': base64.b64encode(new_text.encode('utf-8')).decode('ascii'),
            'sha': content.sha,
            'branch': branch,
        })

    def open_pull_request(
        self,
        parent: RepositoryHandle,
        branch: str,
        head: RepositoryHandle,
        message: str,
    ) -> PullRequestResult:
        """
        Open a pull request from ``head:branch`` into the parent's default branch.

        Validation failures for an already open pull request or for a head
        without new commits are reported instead of raised.
        """
        endpoint = f"repos/{parent.full_name}/pulls"
        response = self._request('POST', endpoint, json_body={
            'title': message,
            'head': f"{head.owner}:{branch}",
            'base': parent.default_branch,
            'body': self.pull_request_body,
        })

        if response.status_code in (200, 201):
            try:
                url = response.json().get('html_url')
            except ValueError:
                url = None
            logger.info(f"A pull request has been created at {url or parent.full_name}")
            return PullRequestResult.CREATED

        text = _error_text(response)
        if response.status_code == 422:
            if 'already exists' in text:
                logger.info(f"Pull request already exists for {head.full_name}:{branch}")
                return PullRequestResult.EXISTS
            if 'No commits between' in text:
                logger.warning(f"No commits between {parent.full_name} and {head.full_name}:{branch}")
                return PullRequestResult.NO_CHANGES
        if response.status_code == 404:
            raise NotFoundError(f"Not found on GitHub: {endpoint}")
        raise ForgeAPIError(
            f"GitHub API error {response.status_code} for {endpoint}: {text}",
            status_code=response.status_code,
        )

    def create_repository(self, name: str) -> RepositoryHandle:
        data = self._api('POST', 'user/repos', json_body={'name': name, 'auto_init': True})
        return RepositoryHandle.from_api_response(data)

    def create_file(
        self,
        repository: RepositoryHandle,
        path: str,
        text: str,
        message: str,
        branch: Optional[str] = None,
    ) -> None:
        body = {
            'message': message,
            'content': base64.b64encode(text.encode('utf-8')).decode('ascii'),
        }
        if branch:
            body['branch'] = branch
        self._api('PUT', self._contents_endpoint(repository, path), json_body=body)
