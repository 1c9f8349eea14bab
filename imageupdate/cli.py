#!/usr/bin/env python3

import click

from imageupdate.commands.config import config_cmd
from imageupdate.commands.parent import parent_handler


@click.group()
@click.version_option(package_name='imageupdate')
def cli():
    """imageupdate - Bulk base image updates for Dockerfiles on GitHub.

    Finds every Dockerfile built on an image, forks the repositories that
    own them, points the FROM line at a new tag and opens pull requests.
    """
    pass


cli.add_command(parent_handler, name='parent')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
