"""Tests for the lint-review pipeline: run_lint_review."""

import contextlib
import os
import types
from unittest.mock import MagicMock

import pytest

from prlint_core.config import DEFAULT_CONFIG
from prlint_core.errors import DiffUnavailable, LinterInvocationFailed
from prlint_core.findings import FileResult, Finding
from prlint_core.reconciler import ReviewState
from prlint_core.runner import LintSummary, print_shadow_decision, run_lint_review

FLAG_BODY = "Found lint issues."
THANKS_BODY = "Thanks!"

# Covers new-file lines 1..10 of web/src/a.ts.
PATCH = "@@ -1,9 +1,10 @@\n" + "".join(f" l{i}\n" for i in range(1, 10)) + "+added\n"


def _config(**overrides):
    config = {
        **DEFAULT_CONFIG,
        "github_token": "tok",
        "prefix": "web",
        "bot_login": "lint-bot",
        "review_body": FLAG_BODY,
        "thanks_body": THANKS_BODY,
        "rule_label_style": "plain",
    }
    config.update(overrides)
    return config


def _user(login):
    return types.SimpleNamespace(login=login)


def _make_pr(body="", reviews=(), review_comments=()):
    pr = MagicMock()
    pr.base.sha = "a" * 40
    pr.head.sha = "b" * 40
    pr.body = body
    pr.get_reviews.return_value = list(reviews)
    pr.get_review_comments.return_value = list(review_comments)
    pr.get_files.return_value = [types.SimpleNamespace(filename="web/src/a.ts", patch=PATCH)]
    return pr


def _bot_review(body):
    return types.SimpleNamespace(body=body, user=_user("lint-bot"), state="COMMENTED", submitted_at=None)


def _bot_comment(path, line, body):
    return types.SimpleNamespace(path=path, line=line, original_line=line, body=body, user=_user("lint-bot"))


def _linter_result(workdir, *findings):
    linter_cwd = os.path.realpath(os.path.join(str(workdir), "web"))
    return [FileResult(file_path=f"{linter_cwd}/src/a.ts", messages=list(findings))]


@pytest.fixture
def pipeline(mocker):
    """Patch GitHub access, diff selection and the linter; return the mocks."""
    mocks = types.SimpleNamespace()
    mocks.pr = _make_pr()
    mocks.get_pull = mocker.patch("prlint_core.runner.get_pull", side_effect=lambda repo, n: mocks.pr)
    mocks.select = mocker.patch("prlint_core.runner.select_changed_files", return_value=["web/src/a.ts"])
    mocks.run_linter = mocker.patch("prlint_core.runner.run_linter", return_value=[])
    return mocks


class TestRunLintReview:
    def test_opt_out_skips_linter_and_posting(self, pipeline, tmp_path):
        pipeline.pr = _make_pr(body="WIP [skip lint]")

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.SKIPPED
        pipeline.select.assert_not_called()
        pipeline.run_linter.assert_not_called()
        pipeline.pr.create_review.assert_not_called()
        pipeline.pr.get_reviews.assert_not_called()

    def test_first_issues_posts_blocking_review(self, pipeline, tmp_path):
        pipeline.run_linter.return_value = _linter_result(
            tmp_path, Finding(rule_id="no-unused-vars", message="x", line=5)
        )

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.ISSUES_FIRST_PASS
        assert summary.posted is True
        pipeline.pr.create_review.assert_called_once_with(
            body=FLAG_BODY,
            event="REQUEST_CHANGES",
            comments=[{"path": "web/src/a.ts", "line": 5, "body": "no-unused-vars: x"}],
        )

    def test_linter_gets_prefix_relative_paths_and_prefix_cwd(self, pipeline, tmp_path):
        run_lint_review("acme/web", 1, _config(linter_timeout=60), repo_obj=MagicMock(), workdir=str(tmp_path))

        args, kwargs = pipeline.run_linter.call_args
        assert args[0] == ["src/a.ts"]
        assert kwargs["cwd"] == os.path.realpath(os.path.join(str(tmp_path), "web"))
        assert kwargs["timeout"] == 60

    def test_already_posted_comments_not_reposted(self, pipeline, tmp_path):
        pipeline.pr = _make_pr(
            reviews=[_bot_review(FLAG_BODY)],
            review_comments=[_bot_comment("web/src/a.ts", 5, "no-unused-vars: x")],
        )
        pipeline.run_linter.return_value = _linter_result(
            tmp_path,
            Finding(rule_id="no-unused-vars", message="x", line=5),
            Finding(rule_id="eqeqeq", message="Expected '==='", line=7),
        )

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.ISSUES_REPEAT_PASS
        comments = pipeline.pr.create_review.call_args.kwargs["comments"]
        assert comments == [{"path": "web/src/a.ts", "line": 7, "body": "eqeqeq: Expected '==='"}]

    def test_default_identity_is_token_user(self, pipeline, mocker, tmp_path):
        login = mocker.patch("prlint_core.runner.get_authenticated_login", return_value="deploy-bot-user")
        flag = _bot_review(FLAG_BODY)
        flag.user = _user("deploy-bot-user")
        posted = _bot_comment("web/src/a.ts", 5, "no-unused-vars: x")
        posted.user = _user("deploy-bot-user")
        pipeline.pr = _make_pr(reviews=[flag], review_comments=[posted])
        pipeline.run_linter.return_value = _linter_result(
            tmp_path, Finding(rule_id="no-unused-vars", message="x", line=5)
        )

        summary = run_lint_review(
            "acme/web", 1, _config(bot_login=DEFAULT_CONFIG["bot_login"]), repo_obj=MagicMock(), workdir=str(tmp_path)
        )

        login.assert_called_once_with("tok")
        assert summary.state == ReviewState.ISSUES_REPEAT_PASS
        pipeline.pr.create_review.assert_not_called()

    def test_configured_identity_skips_lookup(self, pipeline, mocker, tmp_path):
        login = mocker.patch("prlint_core.runner.get_authenticated_login")

        run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        login.assert_not_called()

    def test_same_comment_by_another_user_does_not_count(self, pipeline, tmp_path):
        human = _bot_comment("web/src/a.ts", 5, "no-unused-vars: x")
        human.user = _user("alice")
        pipeline.pr = _make_pr(review_comments=[human])
        pipeline.run_linter.return_value = _linter_result(
            tmp_path, Finding(rule_id="no-unused-vars", message="x", line=5)
        )

        run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        pipeline.pr.create_review.assert_called_once()

    def test_repeat_run_with_nothing_new_posts_nothing(self, pipeline, tmp_path):
        pipeline.pr = _make_pr(
            reviews=[_bot_review(FLAG_BODY)],
            review_comments=[_bot_comment("web/src/a.ts", 5, "no-unused-vars: x")],
        )
        pipeline.run_linter.return_value = _linter_result(
            tmp_path, Finding(rule_id="no-unused-vars", message="x", line=5)
        )

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.ISSUES_REPEAT_PASS
        assert summary.posted is False
        pipeline.pr.create_review.assert_not_called()

    def test_clean_after_flag_posts_thanks_once(self, pipeline, tmp_path):
        pipeline.pr = _make_pr(reviews=[_bot_review(FLAG_BODY)])

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.NO_ISSUES_AFTER_FIX
        pipeline.pr.create_review.assert_called_once_with(body=THANKS_BODY, event="COMMENT")

    def test_clean_after_thanks_posts_nothing(self, pipeline, tmp_path):
        pipeline.pr = _make_pr(reviews=[_bot_review(FLAG_BODY), _bot_review(THANKS_BODY)])

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.state == ReviewState.NO_ISSUES_FRESH
        pipeline.pr.create_review.assert_not_called()

    def test_no_matching_files_skips_linter(self, pipeline, tmp_path):
        pipeline.select.return_value = []

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        pipeline.run_linter.assert_not_called()
        assert summary.state == ReviewState.NO_ISSUES_FRESH

    def test_advisory_posture(self, pipeline, tmp_path):
        pipeline.run_linter.return_value = _linter_result(tmp_path, Finding(rule_id="semi", message="m", line=2))

        run_lint_review("acme/web", 1, _config(blocking=False), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert pipeline.pr.create_review.call_args.kwargs["event"] == "COMMENT"

    def test_findings_outside_diff_dropped(self, pipeline, tmp_path):
        pipeline.run_linter.return_value = _linter_result(
            tmp_path,
            Finding(rule_id="semi", message="m", line=2),
            Finding(rule_id="semi", message="m", line=400),
        )

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        assert summary.total_comments == 1
        assert [c["line"] for c in pipeline.pr.create_review.call_args.kwargs["comments"]] == [2]

    def test_diff_filter_can_be_disabled(self, pipeline, tmp_path):
        pipeline.run_linter.return_value = _linter_result(tmp_path, Finding(rule_id="semi", message="m", line=400))

        run_lint_review("acme/web", 1, _config(diff_lines_only=False), repo_obj=MagicMock(), workdir=str(tmp_path))

        pipeline.pr.get_files.assert_not_called()
        assert pipeline.pr.create_review.call_args.kwargs["comments"][0]["line"] == 400

    def test_shadow_mode_does_not_post(self, pipeline, tmp_path):
        pipeline.run_linter.return_value = _linter_result(tmp_path, Finding(rule_id="semi", message="m", line=2))

        summary = run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path), shadow=True)

        assert summary.state == ReviewState.ISSUES_FIRST_PASS
        assert summary.posted is False
        pipeline.pr.create_review.assert_not_called()

    def test_linter_failure_aborts_before_posting(self, pipeline, tmp_path):
        pipeline.run_linter.side_effect = LinterInvocationFailed("Linter exited with code 2")

        with pytest.raises(LinterInvocationFailed):
            run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        pipeline.pr.create_review.assert_not_called()
        pipeline.pr.get_reviews.assert_not_called()

    def test_diff_failure_aborts_before_posting(self, pipeline, tmp_path):
        pipeline.select.side_effect = DiffUnavailable("bad revision")

        with pytest.raises(DiffUnavailable):
            run_lint_review("acme/web", 1, _config(), repo_obj=MagicMock(), workdir=str(tmp_path))

        pipeline.run_linter.assert_not_called()
        pipeline.pr.create_review.assert_not_called()

    def test_checkout_mode_lints_inside_clone(self, pipeline, mocker, tmp_path):
        clone_dir = tmp_path / "clone"
        clone_dir.mkdir()

        @contextlib.contextmanager
        def fake_checkout(*args, **kwargs):
            yield str(clone_dir)

        checkout = mocker.patch("prlint_core.runner.temporary_checkout", side_effect=fake_checkout)
        install = mocker.patch("prlint_core.runner.install_dependencies")

        run_lint_review(
            "acme/web", 1, _config(install_command=["yarn", "install"]), repo_obj=MagicMock(), checkout=True
        )

        checkout.assert_called_once_with("acme/web", 1, "b" * 40, "tok", None)
        install.assert_called_once_with(["yarn", "install"], cwd=os.path.join(str(clone_dir), "web"), timeout=None)
        assert pipeline.run_linter.call_args.kwargs["cwd"] == os.path.realpath(os.path.join(str(clone_dir), "web"))


class TestPrintShadowDecision:
    def test_no_action_prints_message(self, mocker):
        from prlint_core.reconciler import Decision

        mock_print = mocker.patch("prlint_core.runner.console.print")
        print_shadow_decision(Decision(ReviewState.NO_ISSUES_FRESH))
        printed = " ".join(str(a) for call in mock_print.call_args_list for a in call.args)
        assert "no review would be posted" in printed.lower()


class TestLintSummary:
    def test_as_dict_serialises_state(self):
        summary = LintSummary(repo="acme/web", pr_number=1, head_sha="b" * 40, state=ReviewState.SKIPPED)
        data = summary.as_dict()
        assert data["state"] == "skipped"
        assert data["posted"] is False
        assert data["new_comments"] == []
