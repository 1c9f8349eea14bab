"""
Tests for the imageupdate command line.

The GitHub client is replaced by the in-memory forge so the commands
run end to end without network access.
"""

import json
import os
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from conftest import FakeForge, dockerfile
from imageupdate.cli import cli
from imageupdate.exit_codes import API_ERROR, AUTH_ERROR, DATA_ERROR, USAGE_ERROR


@pytest.fixture
def env(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith('IMAGEUPDATE_'):
            monkeypatch.delenv(key)
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.setenv('IMAGEUPDATE_SEARCH_DELAY_SECONDS', '0')
    monkeypatch.setenv('IMAGEUPDATE_FORKS_WAIT_DELAY_SECONDS', '0')
    return tmp_path


@pytest.fixture
def forge():
    forge = FakeForge()
    forge.add_repo("acme/app", {"Dockerfile": dockerfile("base:1.0")})
    forge.add_repo("acme/web", {"Dockerfile": dockerfile("base:1.0")})
    forge.set_search(("acme/app", "Dockerfile"), ("acme/web", "Dockerfile"))
    return forge


def _invoke(forge, *args):
    with patch('imageupdate.commands.parent.GitHubClient') as client_cls:
        client_cls.from_config.return_value = forge
        return CliRunner().invoke(cli, list(args))


def _json_lines(result):
    return [json.loads(line) for line in result.stdout.splitlines() if line.strip()]


class TestParentCommand:
    """Tests for `imageupdate parent`."""

    def test_json_output(self, env, forge):
        result = _invoke(forge, 'parent', 'base', '2.0', '--store', 'image-store', '--json')

        assert result.exit_code == 0
        lines = _json_lines(result)
        assert [line['name'] for line in lines[:-1]] == ["me/app", "me/web"]
        assert all(line['action'] == 'pull_request_opened' for line in lines[:-1])
        summary = lines[-1]
        assert summary['type'] == 'summary'
        assert summary['successful'] == 2
        assert forge.files[("me/app", "main", "Dockerfile")] == dockerfile("base:2.0")
        assert ("me/image-store", "main", "store.json") in forge.files

    def test_options_passed_through(self, env, forge):
        forge.files[("acme/app", "release", "Dockerfile")] = dockerfile("base:1.0")
        forge.files[("acme/web", "release", "Dockerfile")] = dockerfile("base:1.0")

        result = _invoke(
            forge, 'parent', 'base', '2.0', '-s', 'image-store', '-o', 'acme',
            '-b', 'release', '-m', 'Bump base', '-c', 'Security fix',
        )

        assert result.exit_code == 0
        assert forge.calls['search'][0] == ("base", "acme")
        assert {call[2] for call in forge.calls['open_pull_request']} == {"release"}
        assert {call[3] for call in forge.calls['open_pull_request']} == {"Bump base"}
        messages = [call[2] for call in forge.calls['update_file_content']]
        assert messages == ["Fix Dockerfile base image to base:2.0\n\nSecurity fix"] * 2

    def test_not_found(self, env):
        result = _invoke(FakeForge(), 'parent', 'base', '2.0', '-s', 'image-store', '--json')

        assert result.exit_code == 0
        assert _json_lines(result)[-1]['found'] is False

    def test_partial_failure_exit_code(self, env, forge):
        forge.fail['update_file_content'].add("me/app")

        result = _invoke(forge, 'parent', 'base', '2.0', '-s', 'image-store', '--json')

        assert result.exit_code == API_ERROR
        lines = _json_lines(result)
        assert lines[-1]['type'] == 'UpdateError'
        summary = lines[-2]
        assert summary['failed'] == 1
        assert summary['successful'] == 1
        # The other repository still got its update
        assert forge.pulls_for("acme/web") == 1

    def test_auth_error(self, env, forge):
        forge.login = None

        result = _invoke(forge, 'parent', 'base', '2.0', '-s', 'image-store')

        assert result.exit_code == AUTH_ERROR
        assert "Could not retrieve authenticated user." in result.output

    def test_unexpected_error_exit_code(self, env, forge):
        forge.search_content_by_image = MagicMock(side_effect=ValueError("bad payload"))

        result = _invoke(forge, 'parent', 'base', '2.0', '-s', 'image-store', '--json')

        assert result.exit_code == DATA_ERROR
        assert _json_lines(result)[-1] == {"error": "bad payload", "type": "ValueError"}

    def test_store_is_required(self, env, forge):
        result = _invoke(forge, 'parent', 'base', '2.0')
        assert result.exit_code == USAGE_ERROR
        assert forge.calls['search'] == []

    def test_plain_summary(self, env, forge):
        result = _invoke(forge, 'parent', 'base', '2.0', '-s', 'image-store')

        assert result.exit_code == 0
        assert "Pull requests opened: 2" in result.output


class TestConfigCommand:
    """Tests for `imageupdate config`."""

    def test_show_redacts_token(self, env, monkeypatch):
        monkeypatch.setenv('IMAGEUPDATE_GITHUB_TOKEN', 'secret')

        result = CliRunner().invoke(cli, ['config', 'show'])

        assert result.exit_code == 0
        config = json.loads(result.stdout)
        assert config['github']['token'] == '***'
        assert 'secret' not in result.stdout

    def test_show_path(self, env):
        result = CliRunner().invoke(cli, ['config', 'show', '--path'])
        assert json.loads(result.stdout)['config_path'] == str(env / '.imageupdate' / 'config.json')

    def test_init_writes_defaults_once(self, env):
        runner = CliRunner()

        first = runner.invoke(cli, ['config', 'init'])
        second = runner.invoke(cli, ['config', 'init'])
        forced = runner.invoke(cli, ['config', 'init', '--force'])

        assert first.exit_code == 0
        assert (env / '.imageupdate' / 'config.json').exists()
        assert second.exit_code == 1
        assert forced.exit_code == 0
