import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_REVIEW_BODY = (
    "Hey there! This is the automated PR review service. "
    " I have found some issues with the changes you made to JavaScript/TypeScript files."
)
DEFAULT_THANKS_BODY = "Thanks for fixing the issues! See you next time!"

DEFAULT_CONFIG: dict = {
    "prefix": "",  # sub-directory ESLint runs in, e.g. "frontend"; "" = repository root
    "extensions": [".js", ".jsx", ".ts", ".tsx"],
    "linter_command": ["yarn", "-s", "eslint", "-f", "json"],
    "linter_timeout": None,  # seconds; None = wait for ESLint to finish
    "linter_ok_exit_codes": [0, 1],  # ESLint exits 1 when it reports problems
    "blocking": True,  # REQUEST_CHANGES when True, COMMENT when False
    "review_body": DEFAULT_REVIEW_BODY,
    "thanks_body": DEFAULT_THANKS_BODY,
    "bot_login": None,  # login the bot posts as; None = the GitHub token's own user
    "opt_out_markers": ["[skip lint]", "[lint skip]", "<!-- prlint:skip -->"],
    "diff_source": "git",  # "git" (local checkout) or "api" (GitHub compare API)
    "rule_label_style": "link",  # "link" (markdown docs link) or "plain" (raw rule id)
    "diff_lines_only": True,  # drop findings on lines outside the PR's diff hunks
    "install_command": None,  # e.g. ["yarn", "install", "--frozen-lockfile"], run in fresh checkouts
    "checkout_dir": None,  # parent directory for temporary checkouts (webhook server)
}

_DIFF_SOURCES = ("git", "api")
_RULE_LABEL_STYLES = ("link", "plain")
_LIST_KEYS = ("extensions", "linter_command", "linter_ok_exit_codes", "opt_out_markers")


def load_config(config_path: str = ".prlint.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prlint.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG}
    for key in _LIST_KEYS:
        config[key] = list(DEFAULT_CONFIG[key])

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["diff_source"] not in _DIFF_SOURCES:
        raise ValueError(f"Unknown diff_source: {config['diff_source']!r}. Choose 'git' or 'api'.")
    if config["rule_label_style"] not in _RULE_LABEL_STYLES:
        raise ValueError(f"Unknown rule_label_style: {config['rule_label_style']!r}. Choose 'link' or 'plain'.")

    # Normalise "frontend/" and "/frontend" to "frontend".
    config["prefix"] = (config.get("prefix") or "").strip("/")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["webhook_secret"] = os.environ.get("PRLINT_WEBHOOK_SECRET")

    return config
