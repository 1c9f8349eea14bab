"""Tests for RepositoryResolver."""

from unittest.mock import MagicMock

import pytest

from imageupdate.domain import ForgeUser, RepositoryHandle
from imageupdate.exit_codes import AuthError, ForgeAPIError, NotFoundError
from imageupdate.services.repository_resolver import RepositoryResolver, candidate_forks

TWO_APPS = {"acme/app": "Dockerfile", "beta/app": "Dockerfile"}


def _fork(full_name):
    return RepositoryHandle(full_name, is_fork=True)


def _client(listings, parents):
    """Client whose listings come from ``listings`` and forks fetch with ``parents``."""
    client = MagicMock()
    client.list_repositories_for_user.side_effect = listings

    def get_repository(full_name):
        if full_name not in parents:
            raise NotFoundError(f"Not found on GitHub: repos/{full_name}")
        return RepositoryHandle(full_name, is_fork=True, parent=RepositoryHandle(parents[full_name]))

    client.get_repository.side_effect = get_repository
    return client


class TestCandidateForks:

    def test_exact_and_renamed_forks(self):
        repos = [_fork("me/app"), _fork("me/web-2")]
        found = candidate_forks({"acme/app": "Dockerfile", "acme/web": "Dockerfile"}, repos)
        assert found == repos

    def test_non_fork_with_same_name_excluded(self):
        assert candidate_forks({"acme/app": "Dockerfile"}, [RepositoryHandle("me/app")]) == []

    def test_similar_name_excluded(self):
        assert candidate_forks({"acme/app": "Dockerfile"}, [_fork("me/app-tools")]) == []


class TestGetRepositoriesForUser:

    def test_requires_user(self, forge, delays):
        resolver = RepositoryResolver(forge, sleep=delays.append)
        with pytest.raises(AuthError):
            resolver.get_repositories_for_user({}, None)

    def test_waits_for_forks_to_appear(self, delays):
        client = _client([[], [], [_fork("me/app")]], {"me/app": "acme/app"})
        resolver = RepositoryResolver(client, sleep=delays.append)

        repos = resolver.get_repositories_for_user({"acme/app": "Dockerfile"}, ForgeUser("me"))

        assert [r.full_name for r in repos] == ["me/app"]
        assert client.list_repositories_for_user.call_count == 3
        assert delays == [1.0, 1.0]

    def test_one_fork_does_not_cover_two_parents_with_the_same_name(self, delays):
        client = _client(
            [[_fork("me/app")], [_fork("me/app"), _fork("me/app-1")]],
            {"me/app": "acme/app", "me/app-1": "beta/app"},
        )
        resolver = RepositoryResolver(client, sleep=delays.append)

        repos = resolver.get_repositories_for_user(TWO_APPS, ForgeUser("me"))

        assert [r.full_name for r in repos] == ["me/app", "me/app-1"]
        assert delays == [1.0]
        # Each fork is fetched once across listings
        assert [c.args[0] for c in client.get_repository.call_args_list] == ["me/app", "me/app-1"]

    def test_unrelated_fork_with_the_same_name_does_not_count(self, delays):
        client = _client(
            [[_fork("me/app")], [_fork("me/app"), _fork("me/app-1")]],
            {"me/app": "other/app", "me/app-1": "acme/app"},
        )
        resolver = RepositoryResolver(client, sleep=delays.append)

        repos = resolver.get_repositories_for_user({"acme/app": "Dockerfile"}, ForgeUser("me"))

        assert "me/app-1" in [r.full_name for r in repos]
        assert client.list_repositories_for_user.call_count == 2

    def test_fetch_failure_while_waiting_is_retried(self, delays):
        client = _client([[_fork("me/app")], [_fork("me/app")]], {"me/app": "acme/app"})
        fetch = client.get_repository.side_effect
        client.get_repository.side_effect = [ForgeAPIError("boom", status_code=502), fetch("me/app")]
        resolver = RepositoryResolver(client, sleep=delays.append)

        repos = resolver.get_repositories_for_user({"acme/app": "Dockerfile"}, ForgeUser("me"))

        assert [r.full_name for r in repos] == ["me/app"]
        assert client.get_repository.call_count == 2
        assert delays == [1.0]

    def test_gives_up_after_wait_attempts(self, delays):
        client = MagicMock()
        client.list_repositories_for_user.return_value = []
        resolver = RepositoryResolver(client, wait_attempts=3, wait_delay=0.1, sleep=delays.append)

        repos = resolver.get_repositories_for_user({"acme/app": "Dockerfile"}, ForgeUser("me"))

        assert repos == []
        assert client.list_repositories_for_user.call_count == 3
        assert delays == [0.1, 0.1]

    def test_resolve_reuses_fetched_fork(self, delays):
        client = _client([[_fork("me/app")]], {"me/app": "acme/app"})
        resolver = RepositoryResolver(client, sleep=delays.append)
        repos = resolver.get_repositories_for_user({"acme/app": "Dockerfile"}, ForgeUser("me"))

        resolution = resolver.resolve(repos[0], {"acme/app": "Dockerfile"})

        assert resolution.parent.full_name == "acme/app"
        assert client.get_repository.call_count == 1


class TestResolve:

    def test_links_fork_to_parent(self, forge):
        forge.add_repo("acme/app")
        forge.add_repo("me/app", parent="acme/app")
        resolver = RepositoryResolver(forge)

        resolution = resolver.resolve(RepositoryHandle("me/app", is_fork=True), {"acme/app": "Dockerfile"})

        assert not resolution.skipped
        assert resolution.repository.full_name == "me/app"
        assert resolution.parent.full_name == "acme/app"

    def test_non_fork_skipped_without_fetch(self, forge):
        forge.add_repo("me/tool")
        resolver = RepositoryResolver(forge)

        resolution = resolver.resolve(RepositoryHandle("me/tool"), {"acme/app": "Dockerfile"})

        assert resolution.skipped
        assert resolution.reason == "not a fork"
        assert forge.calls['get_repository'] == []

    def test_deleted_repository_skipped(self, forge):
        forge.add_repo("acme/app")
        forge.add_repo("me/app", parent="acme/app")
        forge.deleted.add("me/app")
        resolver = RepositoryResolver(forge)

        resolution = resolver.resolve(RepositoryHandle("me/app", is_fork=True), {"acme/app": "Dockerfile"})

        assert resolution.skipped
        assert resolution.reason == "not found"

    def test_unrelated_parent_skipped(self, forge):
        forge.add_repo("other/lib")
        forge.add_repo("me/lib", parent="other/lib")
        resolver = RepositoryResolver(forge)

        resolution = resolver.resolve(RepositoryHandle("me/lib", is_fork=True), {"acme/app": "Dockerfile"})

        assert resolution.skipped
        assert resolution.reason == "parent not targeted"
