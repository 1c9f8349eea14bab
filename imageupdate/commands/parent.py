"""
Parent command for imageupdate.

Updates every Dockerfile that builds on a given base image: forks the
owning repositories, rewrites the FROM line and opens pull requests.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from ..config import configure_logging, load_config
from ..domain import RunConfig
from ..exit_codes import CommandError, INTERRUPTED, SUCCESS, get_exit_code_for_exception
from ..infra.github_client import GitHubClient
from ..render import render_run_result
from ..services.run_coordinator import RunCoordinator


def _print_result(result, output_json: bool, pretty: bool) -> None:
    if result is None:
        return
    if output_json:
        for detail in result.details:
            print(json.dumps(detail.to_dict()), flush=True)
        print(json.dumps(result.to_dict()), flush=True)
    elif pretty:
        render_run_result(result)
    else:
        if not result.found:
            print(f"No Dockerfiles reference {result.image}.", file=sys.stderr)
            return
        print(f"\nUpdate to {result.image}:{result.tag} complete:", file=sys.stderr)
        print(f"  Pull requests opened: {result.successful}", file=sys.stderr)
        if result.skipped > 0:
            print(f"  Skipped: {result.skipped}", file=sys.stderr)
        if result.failed > 0:
            print(f"  Failed: {result.failed}", file=sys.stderr)
            for error in result.errors:
                print(f"    - {error}", file=sys.stderr)


@click.command('parent')
@click.argument('image')
@click.argument('tag')
@click.option('-s', '--store', required=True, help='Name of the image tag store')
@click.option('-o', '--org', default=None, help='Only search repositories of this user or organization')
@click.option('-b', '--branch', default=None, help='Branch to update (default: each fork\'s default branch)')
@click.option('-m', '--message', default=None, help='Pull request title')
@click.option('-c', '--comment', default=None, help='Extra text for the commit message')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='Configuration file to use')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@click.option('--pretty', is_flag=True, help='Display with rich formatting')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def parent_handler(
    image: str,
    tag: str,
    store: str,
    org: Optional[str],
    branch: Optional[str],
    message: Optional[str],
    comment: Optional[str],
    config_file: Optional[str],
    output_json: bool,
    pretty: bool,
    debug: bool,
):
    """
    Update every repository's Dockerfiles that use IMAGE to IMAGE:TAG.

    Each repository with a matching Dockerfile is forked under your
    account, the FROM line is rewritten in the fork and a pull request is
    opened back to the original repository. The store records TAG as the
    latest tag of IMAGE.

    \b
    Examples:
        # Update every Dockerfile built on library/python
        imageupdate parent library/python 3.12 --store image-store
        # Only repositories in one organization, on a release branch
        imageupdate parent myorg/base 2.0 -s image-store -o myorg -b release
        # Machine readable results
        imageupdate parent myorg/base 2.0 -s image-store --json
    """
    try:
        config = load_config(Path(config_file) if config_file else None)
        configure_logging(config, debug=debug)

        client = GitHubClient.from_config(config)
        coordinator = RunCoordinator.from_config(client, config)
        options = RunConfig(
            image=image,
            tag=tag,
            store=store,
            org=org,
            branch=branch,
            message=message,
            comment=comment,
        )
        result = coordinator.run(options)
    except CommandError as e:
        _print_result(getattr(e, 'run_result', None), output_json, pretty)
        if output_json:
            print(json.dumps({
                "error": str(e),
                "type": type(e).__name__,
                "exit_code": e.exit_code,
            }), flush=True)
        else:
            click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except KeyboardInterrupt:
        click.echo("Interrupted by user", err=True)
        sys.exit(INTERRUPTED)
    except Exception as e:
        if output_json:
            print(json.dumps({"error": str(e), "type": type(e).__name__}), flush=True)
        else:
            click.echo(f"Command failed: {e}", err=True)
        sys.exit(get_exit_code_for_exception(e))

    _print_result(result, output_json, pretty)
    sys.exit(SUCCESS)
