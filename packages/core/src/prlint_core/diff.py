"""Changed-file selection between two revisions.

Two providers produce the raw list of changed paths: the local git checkout
(the usual case inside CI, where the repository is already cloned) and
GitHub's compare API (for the webhook server, which has no checkout). Both
only report files that still exist at the head revision.
"""

from __future__ import annotations

import logging
import subprocess

from github import GithubException

from prlint_core.errors import ApiUnavailable, DiffUnavailable

logger = logging.getLogger(__name__)

LINTED_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

# Compare API statuses that leave a lintable file at head. "removed" is gone;
# "changed" is a mode-only change and "unchanged" carries no content change.
_KEPT_STATUSES = {"added", "copied", "modified", "renamed"}

# Compare API answers 404 for an unknown SHA and 422 for an unrelated history.
_UNRESOLVABLE_STATUSES = {404, 422}


class GitDiffProvider:
    """Lists changed files using ``git diff`` in a local checkout."""

    def __init__(self, cwd: str = "."):
        self.cwd = cwd

    def changed_files(self, base_sha: str, head_sha: str) -> list[str]:
        args = ["git", "diff", "--name-only", "-z", "--diff-filter=ACMR", base_sha, head_sha, "--"]
        try:
            result = subprocess.run(args, cwd=self.cwd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise DiffUnavailable("git executable not found") from e

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error("git diff %s..%s failed: %s", base_sha[:7], head_sha[:7], stderr)
            raise DiffUnavailable(f"Could not diff {base_sha[:7]}..{head_sha[:7]}: {stderr}")

        return [p for p in result.stdout.split("\0") if p]


class CompareApiDiffProvider:
    """Lists changed files using GitHub's compare API."""

    def __init__(self, repo):
        self.repo = repo

    def changed_files(self, base_sha: str, head_sha: str) -> list[str]:
        try:
            comparison = self.repo.compare(base_sha, head_sha)
            files = list(comparison.files)
        except GithubException as e:
            if e.status in _UNRESOLVABLE_STATUSES:
                raise DiffUnavailable(f"Could not compare {base_sha[:7]}..{head_sha[:7]}: {e}") from e
            raise ApiUnavailable(f"Compare API failed: {e}") from e

        return [f.filename for f in files if f.status in _KEPT_STATUSES]


def _matches(path: str, prefix: str, extensions) -> bool:
    if prefix and not path.startswith(prefix + "/"):
        return False
    return path.lower().endswith(tuple(extensions))


def select_changed_files(
    provider,
    base_sha: str,
    head_sha: str,
    prefix: str = "",
    extensions=LINTED_EXTENSIONS,
) -> list[str]:
    """Return the repository-relative JS/TS files under ``prefix`` changed in ``base..head``.

    An empty list is a normal result (e.g. a docs-only PR), not an error.
    """
    prefix = prefix.strip("/")
    selected: list[str] = []
    seen: set[str] = set()
    for path in provider.changed_files(base_sha, head_sha):
        if path in seen or not _matches(path, prefix, extensions):
            continue
        seen.add(path)
        selected.append(path)

    logger.info("Selected %d changed file(s) under %r", len(selected), prefix or ".")
    return selected


def strip_prefix(paths: list[str], prefix: str) -> list[str]:
    """Make repository-relative paths relative to ``prefix`` for the linter's working directory."""
    prefix = prefix.strip("/")
    if not prefix:
        return list(paths)
    return [p[len(prefix) + 1 :] if p.startswith(prefix + "/") else p for p in paths]


def commentable_lines(patch_text: str | None) -> set[int]:
    """Return the new-file line numbers a review comment can be anchored to.

    GitHub accepts line comments on any added or context line inside a hunk;
    removed lines have no new-file line number.
    """
    lines: set[int] = set()
    file_line: int | None = None

    for line in (patch_text or "").splitlines():
        if line.startswith("@@"):
            try:
                new_file_range = line.split("+")[1].split(" ")[0]
                file_line = int(new_file_range.split(",")[0])
            except (IndexError, ValueError):
                file_line = None
            continue
        if file_line is None:
            continue
        if line.startswith("-"):
            continue  # Removed line, even "---i;"; PR patches carry no file headers
        if line.startswith("\\"):
            continue  # "\ No newline at end of file"
        lines.add(file_line)
        file_line += 1

    return lines


def filter_to_diff(comments, patches: dict[str, str | None]):
    """Drop comments on lines outside the PR's diff hunks.

    GitHub rejects a whole review when any of its line comments falls outside
    the diff, so these are filtered before reconciliation.
    """
    allowed = {path: commentable_lines(patch) for path, patch in patches.items()}
    kept = []
    for comment in comments:
        if comment.line in allowed.get(comment.path, ()):
            kept.append(comment)
        else:
            logger.debug("Skipping comment for %s:%d (not in diff)", comment.path, comment.line)
    return kept
