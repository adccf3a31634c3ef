"""CLI entry point for prlint.

Commands:
  review: lint a pull request's changed files and reconcile the review
  serve: run the GitHub webhook server
  init: write .prlint.yml and an optional GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from prlint_cli.commands.init import init_cmd
from prlint_cli.commands.review import review_cmd
from prlint_cli.commands.serve import serve_cmd

console = Console()


@click.group()
@click.version_option(
    version=importlib.metadata.version("prlint"),
    prog_name="prlint",
)
@click.option(
    "--config",
    "config_path",
    default=".prlint.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRLINT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """ESLint reviewer for GitHub pull requests."""
    from prlint_core.config import load_config
    from prlint_cli.auth import resolve_github_token

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(serve_cmd)
main.add_command(init_cmd)
