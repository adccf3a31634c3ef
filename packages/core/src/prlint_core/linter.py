"""ESLint subprocess invocation and output parsing.

ESLint is run with an argument list (never through a shell) so file paths and
revision names cannot be interpreted as shell syntax. Its ``-f json`` output
is validated field by field; anything unexpected is a
``LinterInvocationFailed`` rather than a stray ``KeyError`` further down.
"""

from __future__ import annotations

import json
import logging
import subprocess

from prlint_core.errors import LinterInvocationFailed
from prlint_core.findings import FileResult, Finding

logger = logging.getLogger(__name__)

# Keep operator logs readable when ESLint dumps a large stack trace.
_STDERR_LOG_LIMIT = 2_000


def run_linter(
    files: list[str],
    command: list[str],
    cwd: str,
    timeout: float | None = None,
    ok_exit_codes: tuple[int, ...] = (0, 1),
) -> list[FileResult]:
    """Run ESLint on ``files`` (relative to ``cwd``) and return its parsed results.

    An empty file list short-circuits without starting a process.
    """
    if not files:
        return []

    args = list(command) + list(files)
    logger.info("Running linter on %d file(s) in %s", len(files), cwd)
    logger.debug("Linter command: %s", args)

    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise LinterInvocationFailed(f"Linter executable not found: {command[0]!r}") from e
    except subprocess.TimeoutExpired as e:
        raise LinterInvocationFailed(f"Linter did not finish within {timeout}s") from e

    stderr = (result.stderr or "").strip()
    if result.returncode not in ok_exit_codes:
        logger.error("Linter exited with code %d: %s", result.returncode, stderr[:_STDERR_LOG_LIMIT])
        raise LinterInvocationFailed(f"Linter exited with code {result.returncode}", stderr=stderr)

    return parse_linter_output(result.stdout, stderr=stderr)


def parse_linter_output(stdout: str, stderr: str = "") -> list[FileResult]:
    """Parse ESLint's JSON formatter output into ``FileResult`` objects."""
    if not stdout or not stdout.strip():
        raise LinterInvocationFailed("Linter produced no output", stderr=stderr)
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise LinterInvocationFailed(f"Linter output is not valid JSON: {e}", stderr=stderr) from e

    if not isinstance(data, list):
        raise LinterInvocationFailed("Linter output must be a JSON array of file results", stderr=stderr)

    return [_parse_file_result(entry, index, stderr) for index, entry in enumerate(data)]


def _parse_file_result(entry, index: int, stderr: str) -> FileResult:
    if not isinstance(entry, dict):
        raise LinterInvocationFailed(f"File result #{index} is not an object", stderr=stderr)
    file_path = entry.get("filePath")
    messages = entry.get("messages")
    if not isinstance(file_path, str) or not file_path:
        raise LinterInvocationFailed(f"File result #{index} has no filePath", stderr=stderr)
    if not isinstance(messages, list):
        raise LinterInvocationFailed(f"File result for {file_path} has no messages list", stderr=stderr)

    findings = []
    for message in messages:
        finding = _parse_finding(message, file_path, stderr)
        if finding is not None:
            findings.append(finding)
    return FileResult(file_path=file_path, messages=findings)


def _parse_finding(message, file_path: str, stderr: str) -> Finding | None:
    if not isinstance(message, dict):
        raise LinterInvocationFailed(f"Malformed message in {file_path}", stderr=stderr)

    text = message.get("message")
    rule_id = message.get("ruleId")
    if not isinstance(text, str):
        raise LinterInvocationFailed(f"Message in {file_path} has no text", stderr=stderr)
    if rule_id is not None and not isinstance(rule_id, str):
        raise LinterInvocationFailed(f"Message in {file_path} has a non-string ruleId", stderr=stderr)

    line = message.get("line")
    if line is None:
        # File-level notices ("File ignored because of a matching ignore pattern")
        # have no location and cannot be anchored to a line.
        logger.debug("Dropping file-level linter message for %s: %s", file_path, text)
        return None
    if not _is_positive_int(line):
        raise LinterInvocationFailed(f"Message in {file_path} has invalid line {line!r}", stderr=stderr)

    for key in ("column", "endLine", "endColumn", "severity"):
        value = message.get(key)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
            raise LinterInvocationFailed(f"Message in {file_path} has invalid {key} {value!r}", stderr=stderr)

    return Finding(
        rule_id=rule_id,
        message=text,
        line=line,
        column=message.get("column") or 1,
        end_line=message.get("endLine"),
        end_column=message.get("endColumn"),
        severity=message.get("severity") or 2,
    )


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1
