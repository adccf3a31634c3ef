"""GitHub webhook endpoint.

Each delivery is handled synchronously inside its request: verify the
signature, parse the pull_request event, clone the PR head, lint and
reconcile. Deliveries share no state, so concurrent pushes to one PR are
independent runs and only structural dedup keeps them from repeating each
other's comments.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from flask import Flask, abort, jsonify, request

from prlint_core.errors import PrlintError
from prlint_core.gh.events import parse_pull_request_event
from prlint_core.runner import run_lint_review

logger = logging.getLogger(__name__)


def verify_signature(payload: bytes, signature_header: str | None, secret: str | None) -> bool:
    """Check an ``X-Hub-Signature-256`` header against the shared secret."""
    if not signature_header or not secret:
        return False
    if not signature_header.startswith("sha256="):
        return False
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), msg=payload, digestmod=hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header)


def create_app(config: dict) -> Flask:
    app = Flask("prlint")
    app.config["PRLINT"] = config

    @app.route("/healthz", methods=["GET"])
    def healthz():
        return "ok"

    @app.route("/webhook", methods=["POST"])
    def webhook():
        prlint_config = app.config["PRLINT"]
        body = request.get_data()
        if not verify_signature(body, request.headers.get("X-Hub-Signature-256"), prlint_config.get("webhook_secret")):
            logger.warning("Rejected webhook delivery %s: bad signature", request.headers.get("X-GitHub-Delivery"))
            abort(401, "Invalid webhook signature.")

        event_name = request.headers.get("X-GitHub-Event", "")
        if event_name == "ping":
            return jsonify({"status": "pong"})
        if event_name != "pull_request":
            return jsonify({"status": "ignored", "reason": f"event {event_name!r} is not handled"}), 202

        payload = request.get_json(silent=True)
        if payload is None:
            abort(400, "Invalid JSON payload.")
        try:
            event = parse_pull_request_event(payload)
        except ValueError as e:
            abort(400, str(e))

        if not event.should_lint:
            return jsonify({"status": "ignored", "reason": f"action {event.action!r} is not linted"}), 202

        logger.info("Linting %s#%d (%s)", event.repo, event.pr_number, event.action)
        try:
            summary = run_lint_review(event.repo, event.pr_number, prlint_config, checkout=True)
        except PrlintError as e:
            logger.error("Lint review of %s#%d failed: %s", event.repo, event.pr_number, e)
            return jsonify({"status": "error", "error": type(e).__name__, "message": str(e)}), 502

        return jsonify({"status": "ok", **summary.as_dict()})

    return app
