"""Web server for handling Slack slash commands, actions and events."""

import json
import logging
import threading
from typing import Any, Callable, Optional

from flask import Flask, jsonify, request

from .adrs import AdrService
from .config import settings
from .slack_app import SlackApp

logger = logging.getLogger(__name__)


def _run_in_background(target: Callable[..., Any], *args: Any) -> threading.Thread:
    """Run ``target`` on a daemon thread so the request can be answered first."""
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


def create_web_server(slack_app: Optional[SlackApp] = None) -> Flask:
    """Create Flask web server for the ADR Slack integration."""

    app = Flask(__name__)
    slack = slack_app or SlackApp(AdrService(settings), settings)

    def _unauthorized() -> Any:
        return jsonify({"response_type": "ephemeral", "text": "Unauthorized"}), 401

    def _verified() -> bool:
        body = request.get_data(as_text=True)
        return slack.verify_slack_request(request.headers, body)

    @app.route("/", methods=["GET"])
    def root() -> Any:
        """Root endpoint."""
        return jsonify(
            {
                "service": "adrbot",
                "status": "running",
                "version": "1.0.0",
                "features": ["adr_log", "adr_add", "pull_request_lookup"],
            }
        )

    @app.route("/health", methods=["GET"])
    def health_check() -> Any:
        """Health check endpoint."""
        return jsonify({"status": "healthy", "service": "adrbot"})

    @app.route("/adr/commands", methods=["POST"])
    def handle_slash_command() -> Any:
        """Handle Slack slash commands."""
        if not _verified():
            return _unauthorized()

        command_data = {
            "command": request.form.get("command"),
            "text": request.form.get("text", ""),
            "channel_id": request.form.get("channel_id") or "",
            "user_id": request.form.get("user_id"),
            "user_name": request.form.get("user_name"),
            "team_id": request.form.get("team_id"),
            "response_url": request.form.get("response_url"),
        }
        logger.info(f"Received command: {command_data['command']} {command_data['text']}")

        try:
            return jsonify(slack.handle_slash_command(command_data))
        except Exception as e:
            logger.error(f"Error handling slash command: {e}")
            return jsonify(
                {
                    "response_type": "ephemeral",
                    "text": f"Error processing command: {str(e)}",
                }
            )

    @app.route("/adr/actions", methods=["POST"])
    def handle_actions() -> Any:
        """Handle Slack interactive payloads (button clicks)."""
        if not _verified():
            return _unauthorized()

        try:
            payload = json.loads(request.form.get("payload", "{}"))
        except json.JSONDecodeError:
            return jsonify({"status": "error", "message": "Invalid payload"}), 400

        def _handle() -> None:
            try:
                slack.handle_interaction(payload)
            except Exception as e:
                logger.error(f"Error handling interaction: {e}")

        # Slack wants the acknowledgement within 3 seconds; results go to response_url
        _run_in_background(_handle)
        return "", 200

    @app.route("/adr/events", methods=["POST"])
    def handle_events() -> Any:
        """Handle Slack events."""
        event_data = request.get_json(silent=True) or {}

        # URL verification happens before a signing secret is in place
        if event_data.get("type") == "url_verification":
            return jsonify({"challenge": event_data.get("challenge")})

        if not _verified():
            return _unauthorized()

        logger.info(f"Received event: {event_data.get('type')}")
        return jsonify({"status": "ok"})

    return app
