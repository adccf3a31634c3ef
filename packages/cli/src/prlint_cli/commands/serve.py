"""serve command: run the GitHub webhook server."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()


@click.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
@click.pass_context
def serve_cmd(ctx, host: str, port: int):
    """Serve POST /webhook for GitHub pull_request events.

    Point the repository's webhook (content type application/json) at
    http://<host>:<port>/webhook with the same secret.

    \b
    Required environment variables:
      GITHUB_TOKEN            Token used to read PRs, clone, and post reviews
      PRLINT_WEBHOOK_SECRET   Webhook secret configured on GitHub
    """
    from prlint_cli.auth import resolve_webhook_secret
    from prlint_cli.webhook import create_app

    config = dict(ctx.obj["config"])
    if not config.get("github_token"):
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")

    secret = resolve_webhook_secret()
    if not secret:
        raise click.UsageError("PRLINT_WEBHOOK_SECRET environment variable is not set.")
    config["webhook_secret"] = secret

    console.print(f"[cyan]Listening for webhooks on http://{host}:{port}/webhook[/cyan]")
    create_app(config).run(host=host, port=port)
