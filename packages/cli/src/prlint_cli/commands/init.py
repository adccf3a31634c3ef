"""init command: write .prlint.yml and an optional GitHub Actions workflow."""

from __future__ import annotations

import importlib.metadata
import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

_WORKFLOW_TEMPLATE = """\
name: prlint

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  lint-review:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4
        with:
          # The base commit must be present for the changed-file diff.
          fetch-depth: 0
          ref: ${{{{ github.event.pull_request.head.sha }}}}

      - name: Set up Node
        uses: actions/setup-node@v4
        with:
          node-version: "20"

      - name: Install JS dependencies
        working-directory: {working_directory}
        run: yarn install --frozen-lockfile

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install prlint
        run: pip install "prlint=={version}"

      - name: Lint and review
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
        run: prlint review --event-path "$GITHUB_EVENT_PATH"
"""


@click.command("init")
@click.option("--prefix", default=None, help="Directory ESLint runs in (e.g. frontend). Prompted when omitted.")
def init_cmd(prefix: str | None):
    """Set up prlint for a repository.

    Creates .prlint.yml and optionally .github/workflows/prlint.yml.
    """
    console.print("\n[bold cyan]prlint init[/bold cyan]: repository setup\n")

    repo = _detect_repo_from_git()
    if repo:
        console.print(f"[dim]Detected repository: {repo}[/dim]")

    if prefix is None:
        prefix = click.prompt("Directory ESLint runs in (blank for repository root)", default="", show_default=False)
    prefix = prefix.strip().strip("/")

    posture = click.prompt(
        "Review posture",
        type=click.Choice(["blocking", "advisory"]),
        default="blocking",
    )

    _write_config({"prefix": prefix, "blocking": posture == "blocking"})
    console.print("[green]Created .prlint.yml[/green]")

    if click.confirm("\nGenerate .github/workflows/prlint.yml for GitHub Actions?", default=True):
        _write_workflow(prefix)
        console.print("[green]Created .github/workflows/prlint.yml[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Try it locally with: [bold]prlint review --repo {repo or '<owner/name>'} --pr <number> --shadow[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    url = result.stdout.strip()
    # https://github.com/owner/repo.git  →  owner/repo
    # git@github.com:owner/repo.git      →  owner/repo
    if "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
    return slug if "/" in slug else None


def _write_config(config: dict) -> None:
    """Write or update .prlint.yml, preserving any existing keys."""
    path = Path(".prlint.yml")
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    try:
        return importlib.metadata.version("prlint")
    except importlib.metadata.PackageNotFoundError:
        return "0.1.0"


def _write_workflow(prefix: str) -> None:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    (workflow_dir / "prlint.yml").write_text(
        _WORKFLOW_TEMPLATE.format(working_directory=prefix or ".", version=_get_version())
    )
