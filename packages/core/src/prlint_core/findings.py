"""ESLint findings and their review-comment form.

A ``Comment`` is what ends up on the pull request. Its three fields double as
the deduplication key: two comments with the same path, line and body are the
same comment, no matter which run produced them.
"""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

_ESLINT_RULE_URL = "https://eslint.org/docs/latest/rules/{rule}"

# Plugin namespace → documentation URL for one of its rules.
# Keys are the part of the ruleId before the last "/".
_PLUGIN_RULE_URLS = {
    "@typescript-eslint": "https://typescript-eslint.io/rules/{rule}",
    "react": "https://github.com/jsx-eslint/eslint-plugin-react/blob/master/docs/rules/{rule}.md",
    "react-hooks": "https://react.dev/reference/eslint-plugin-react-hooks/lints/{rule}",
    "import": "https://github.com/import-js/eslint-plugin-import/blob/main/docs/rules/{rule}.md",
    "jsx-a11y": "https://github.com/jsx-eslint/eslint-plugin-jsx-a11y/blob/main/docs/rules/{rule}.md",
    "jest": "https://github.com/jest-community/eslint-plugin-jest/blob/main/docs/rules/{rule}.md",
    "n": "https://github.com/eslint-community/eslint-plugin-n/blob/master/docs/rules/{rule}.md",
    "promise": "https://github.com/eslint-community/eslint-plugin-promise/blob/main/docs/rules/{rule}.md",
}


@dataclass(frozen=True)
class Finding:
    """A single problem reported by ESLint for one location."""

    rule_id: str | None  # None for parse errors
    message: str
    line: int
    column: int = 1
    end_line: int | None = None
    end_column: int | None = None
    severity: int = 2  # 1 = warning, 2 = error


@dataclass(frozen=True)
class FileResult:
    """ESLint's result for one file. ``file_path`` is usually absolute."""

    file_path: str
    messages: list[Finding] = field(default_factory=list)


@dataclass(frozen=True)
class Comment:
    """A review comment anchored to a line of a repository-relative path."""

    path: str
    line: int
    body: str

    def as_api_dict(self) -> dict:
        return {"path": self.path, "line": self.line, "body": self.body}


def format_rule_label(rule_id: str | None) -> str:
    """Return a markdown label for an ESLint rule id.

    Core rules (no "/") link to eslint.org. Plugin rules link to the plugin's
    docs when the plugin is known; otherwise the rule id is returned as-is.
    Never raises.
    """
    if not rule_id:
        return ""
    if "/" not in rule_id:
        return f"[{rule_id}]({_ESLINT_RULE_URL.format(rule=rule_id)})"

    domain, rule = rule_id.rsplit("/", 1)
    template = _PLUGIN_RULE_URLS.get(domain)
    if template is None or not rule:
        return rule_id
    return f"[{rule_id}]({template.format(rule=rule)})"


def normalize_path(file_path: str, prefix: str = "", cwd: str | None = None) -> str | None:
    """Map a path reported by ESLint to a repository-root-relative path.

    ESLint runs inside ``<repo>/<prefix>`` and usually reports absolute paths.
    Those are made relative to ``cwd``; relative paths are taken as already
    relative to ``cwd``. The prefix is then put back in front. Returns
    ``None`` for a path that resolves outside the repository.
    """
    cwd = cwd if cwd is not None else os.getcwd()
    path = file_path
    if os.path.isabs(path):
        path = os.path.relpath(path, cwd)
    path = posixpath.normpath(posixpath.join(prefix, path.replace(os.sep, "/")))
    if path == ".." or path.startswith("../"):
        return None
    return path


def comment_body(finding: Finding, label_style: str = "link") -> str:
    if not finding.rule_id:
        return finding.message
    label = format_rule_label(finding.rule_id) if label_style == "link" else finding.rule_id
    return f"{label}: {finding.message}"


def normalize(
    results: list[FileResult],
    prefix: str = "",
    cwd: str | None = None,
    label_style: str = "link",
) -> list[Comment]:
    """Flatten per-file ESLint results into review comments.

    File order and finding order are kept, so the same input always produces
    the same list.
    """
    comments = []
    for result in results:
        path = normalize_path(result.file_path, prefix, cwd)
        if path is None:
            if result.messages:
                logger.warning(
                    "Skipping %d finding(s) in %s: outside the repository", len(result.messages), result.file_path
                )
            continue
        for finding in result.messages:
            comments.append(Comment(path=path, line=finding.line, body=comment_body(finding, label_style)))
    return comments
