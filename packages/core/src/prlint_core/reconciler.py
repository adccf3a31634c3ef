"""Lint-result → review-action reconciliation.

GitHub's review timeline is append-only, so the bot cannot edit what it said
last time. Each run therefore rebuilds its memory from the timeline (its own
reviews and review comments) and decides on at most one new review:

=====================  =========================================  ==============================
State                  Condition                                  Action
=====================  =========================================  ==============================
SKIPPED                author opted out                           none
ISSUES_FIRST_PASS      new comments, bot has not flagged before   review with the new comments
ISSUES_REPEAT_PASS     new comments, bot flagged before           review with the new comments
ISSUES_REPEAT_PASS     comments, all already posted               none
NO_ISSUES_AFTER_FIX    clean, last bot review was the flag        closing "thanks" review
NO_ISSUES_FRESH        clean, nothing to acknowledge              none
=====================  =========================================  ==============================

Nothing in this module performs I/O; the caller executes the returned action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from prlint_core.config import DEFAULT_REVIEW_BODY, DEFAULT_THANKS_BODY
from prlint_core.findings import Comment

logger = logging.getLogger(__name__)

EVENT_COMMENT = "COMMENT"
EVENT_REQUEST_CHANGES = "REQUEST_CHANGES"


class ReviewState(str, Enum):
    SKIPPED = "skipped"
    NO_ISSUES_FRESH = "no_issues_fresh"
    NO_ISSUES_AFTER_FIX = "no_issues_after_fix"
    ISSUES_FIRST_PASS = "issues_first_pass"
    ISSUES_REPEAT_PASS = "issues_repeat_pass"


@dataclass(frozen=True)
class ReviewPolicy:
    """Identity and posture of one bot.

    ``review_body`` is the marker the bot recognises its own flagging reviews
    by, so two bots with different bodies can share a repository.
    """

    review_body: str = DEFAULT_REVIEW_BODY
    thanks_body: str = DEFAULT_THANKS_BODY
    blocking: bool = True
    bot_login: str | None = None

    @classmethod
    def from_config(cls, config: dict) -> ReviewPolicy:
        return cls(
            review_body=config.get("review_body", DEFAULT_REVIEW_BODY),
            thanks_body=config.get("thanks_body", DEFAULT_THANKS_BODY),
            blocking=bool(config.get("blocking", True)),
            bot_login=config.get("bot_login"),
        )


@dataclass(frozen=True)
class ReviewRecord:
    """A review already on the pull request's timeline."""

    author: str | None
    body: str
    state: str = ""
    submitted_at: str | None = None  # ISO-8601 UTC timestamp


@dataclass(frozen=True)
class ReconciliationInput:
    comments: list[Comment]
    prior_system_comments: frozenset[Comment] = frozenset()
    has_prior_system_review: bool = False
    opted_out: bool = False


@dataclass(frozen=True)
class ReviewAction:
    """A single review for the caller to submit."""

    body: str
    event: str  # "COMMENT" | "REQUEST_CHANGES"
    comments: list[Comment] = field(default_factory=list)


@dataclass(frozen=True)
class Decision:
    state: ReviewState
    action: ReviewAction | None = None
    new_comments: list[Comment] = field(default_factory=list)


def new_comments_only(comments: list[Comment], already_posted) -> list[Comment]:
    """Return ``comments`` minus ``already_posted``, keeping order and dropping repeats."""
    seen = set(already_posted)
    fresh = []
    for comment in comments:
        if comment in seen:
            logger.debug("Skipping already-posted comment at %s:%d", comment.path, comment.line)
            continue
        seen.add(comment)
        fresh.append(comment)
    return fresh


def reconcile(inp: ReconciliationInput, policy: ReviewPolicy) -> Decision:
    """Decide the single review action (if any) for one lint run."""
    if inp.opted_out:
        return Decision(ReviewState.SKIPPED)

    if inp.comments:
        fresh = new_comments_only(inp.comments, inp.prior_system_comments)
        first_pass = not inp.prior_system_comments and not inp.has_prior_system_review
        state = ReviewState.ISSUES_FIRST_PASS if first_pass else ReviewState.ISSUES_REPEAT_PASS
        if not fresh:
            return Decision(state)
        event = EVENT_REQUEST_CHANGES if policy.blocking else EVENT_COMMENT
        action = ReviewAction(body=policy.review_body, event=event, comments=fresh)
        return Decision(state, action=action, new_comments=fresh)

    if inp.has_prior_system_review:
        return Decision(
            ReviewState.NO_ISSUES_AFTER_FIX,
            action=ReviewAction(body=policy.thanks_body, event=EVENT_COMMENT),
        )
    return Decision(ReviewState.NO_ISSUES_FRESH)


def has_prior_system_review(reviews: list[ReviewRecord], policy: ReviewPolicy) -> bool:
    """Return True when the bot's most recent review flagged issues.

    Reviews are expected in timeline order. Only bodies matching the policy's
    flagging or thanks text count; once a thanks review follows the last flag
    there is nothing left to acknowledge.
    """
    flagged = False
    for review in reviews:
        body = (review.body or "").strip()
        if body == policy.review_body.strip():
            flagged = True
        elif body == policy.thanks_body.strip():
            flagged = False
    return flagged


def system_comments(comments: list[tuple[str | None, Comment]], policy: ReviewPolicy) -> frozenset[Comment]:
    """Return the comments authored by the bot.

    ``comments`` pairs each comment with its author login. When the policy
    has no ``bot_login``, every comment is treated as the bot's.
    """
    if not policy.bot_login:
        return frozenset(c for _, c in comments)
    return frozenset(c for author, c in comments if author == policy.bot_login)


def is_opted_out(body: str | None, markers) -> bool:
    text = (body or "").lower()
    return any(marker and marker.lower() in text for marker in markers)
