import json
import os

import click

from imageupdate.config import get_config_path, get_default_config, load_config, save_config


def _redacted(config):
    """Copy of ``config`` with the GitHub token masked."""
    shown = json.loads(json.dumps(config))
    if shown.get('github', {}).get('token'):
        shown['github']['token'] = '***'
    return shown


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@click.option("--path", is_flag=True, help="Show the config file path being used")
def show_config(pretty, path):
    """Show the current configuration with all merges applied.

    By default, outputs single-line JSON (JSONL format).
    Use --pretty for human-readable formatted output.
    Use --path to see which config file is being used.
    The GitHub token is masked.
    """
    if path:
        print(json.dumps({"config_path": str(get_config_path())}))
        return

    config = _redacted(load_config())
    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))


@config_cmd.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def init_config(force):
    """Write the default configuration to the config file path."""
    config_path = get_config_path()
    if os.path.exists(config_path) and not force:
        click.echo(f"Configuration already exists at {config_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)
    save_config(get_default_config(), config_path)
    click.echo(str(config_path))
