"""Slack app integration for the ``/adr`` command and its interactive buttons."""

import hashlib
import hmac
import logging
import time
from typing import Any, Dict, Mapping, Optional

import requests

from .adrs import AdrService
from .block_formatter import (
    LIST_PRS_ACTION_ID,
    format_adr_log,
    format_created_adr,
    format_pull_requests,
)
from .commands import AddCommand, CommandError, HelpRequested, LogCommand, parse_command
from .config import Settings, settings

logger = logging.getLogger(__name__)

GENERIC_ERROR_TEXT = "Sorry, something went wrong while talking to GitHub. Please try again."


class SlackApiError(Exception):
    """Raised when a message cannot be delivered to Slack."""


class SlackApp:
    """Handles Slack slash commands and block actions for ADRs."""

    def __init__(self, service: AdrService, config: Optional[Settings] = None):
        config = config or settings
        self.service = service
        self.config = config
        self.bot_token = config.slack_bot_token
        self.signing_secret = config.slack_signing_secret
        self.command_name = config.slack_command

    def verify_slack_request(self, headers: Mapping[str, str], body: str) -> bool:
        """Verify that request came from Slack with proper signature validation."""
        if not self.signing_secret:
            if self.config.is_production():
                logger.error("SLACK_SIGNING_SECRET not set in production!")
                return False
            logger.warning("SLACK_SIGNING_SECRET not set, skipping verification (dev mode)")
            return True

        timestamp = headers.get("X-Slack-Request-Timestamp", "")
        signature = headers.get("X-Slack-Signature", "")

        if not timestamp or not signature:
            logger.warning("Missing Slack signature headers")
            return False

        try:
            # Check timestamp is recent (within 5 minutes)
            request_timestamp = int(timestamp)
            if abs(time.time() - request_timestamp) > 300:
                logger.warning("Slack request timestamp too old")
                return False
        except ValueError:
            logger.warning("Invalid Slack request timestamp")
            return False

        sig_basestring = f"v0:{timestamp}:{body}"
        expected_signature = (
            "v0="
            + hmac.new(
                self.signing_secret.encode(),
                sig_basestring.encode(),
                hashlib.sha256,
            ).hexdigest()
        )

        is_valid = hmac.compare_digest(expected_signature, signature)
        if not is_valid:
            logger.warning("Invalid Slack request signature")

        return is_valid

    def post_message(self, channel: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """Post a message to a channel with ``chat.postMessage``.

        Raises:
            SlackApiError: If there is no bot token or Slack rejects the call
        """
        if not self.bot_token:
            raise SlackApiError("SLACK_BOT_TOKEN not set")

        try:
            response = requests.post(
                "https://slack.com/api/chat.postMessage",
                headers={
                    "Authorization": f"Bearer {self.bot_token}",
                    "Content-Type": "application/json",
                },
                json={"channel": channel, **message},
                timeout=30,
            )
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to post Slack message: {e}")
            raise SlackApiError(f"Slack chat.postMessage failed: {e}") from e

        if not isinstance(result, dict) or not result.get("ok"):
            error = result.get("error") if isinstance(result, dict) else "invalid_response"
            raise SlackApiError(f"Slack chat.postMessage returned: {error}")
        return result

    def respond(self, response_url: str, message: Dict[str, Any]) -> None:
        """Send a delayed response to an interaction's ``response_url``.

        Raises:
            SlackApiError: If the response cannot be delivered
        """
        try:
            response = requests.post(response_url, json=message, timeout=30)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to respond to Slack interaction: {e}")
            raise SlackApiError(f"Slack response failed: {e}") from e

    def handle_slash_command(self, command_data: Dict[str, Any]) -> Dict[str, Any]:
        """Handle slash command from Slack."""
        command = command_data.get("command", "")
        text = (command_data.get("text") or "").strip()
        channel_id = command_data.get("channel_id", "")
        user_id = command_data.get("user_id", "")

        logger.info(f"Slash command: {command} {text} in channel {channel_id} by user {user_id}")

        if command != self.command_name:
            return {"response_type": "ephemeral", "text": f"Unknown command: {command}"}

        try:
            parsed = parse_command(text, prog=self.command_name)
        except HelpRequested as e:
            return {"response_type": "ephemeral", "text": f"```{e.text}```"}
        except CommandError as e:
            return {
                "response_type": "ephemeral",
                "text": f"{e}\nTry `{self.command_name} help` for usage.",
            }

        try:
            if isinstance(parsed, LogCommand):
                return self._handle_log(parsed)
            if isinstance(parsed, AddCommand):
                return self._handle_add(parsed, user_id)
        except Exception as e:
            logger.error(f"Error handling {command} {text}: {e}")
            return {"response_type": "ephemeral", "text": GENERIC_ERROR_TEXT}

        return {"response_type": "ephemeral", "text": f"Unknown command: {command}"}

    def _handle_log(self, command: LogCommand) -> Dict[str, Any]:
        adr_files = self.service.get_adr_files(command.criteria)
        return {"response_type": "in_channel", **format_adr_log(adr_files)}

    def _handle_add(self, command: AddCommand, user_id: str) -> Dict[str, Any]:
        logger.info(f"Creating ADR '{command.title}' on {command.branch} for {user_id}")
        created = self.service.create_adr_file(
            title=command.title, branch=command.branch, impact=command.impact
        )
        return {
            "response_type": "in_channel",
            "text": format_created_adr(
                command.title, created.adr_file, created.pull_request_url
            ),
        }

    def handle_interaction(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Handle an interactive payload (button clicks) from Slack."""
        if payload.get("type") != "block_actions":
            return {"status": "ignored"}

        handled = 0
        for action in payload.get("actions", []):
            if action.get("action_id") != LIST_PRS_ACTION_ID:
                continue
            self._list_pull_requests(action.get("value", ""), payload)
            handled += 1

        return {"status": "ok", "handled": handled}

    def _list_pull_requests(self, file_name: str, payload: Dict[str, Any]) -> None:
        try:
            pull_requests = self.service.get_pull_requests_for(file_name)
            message: Dict[str, Any] = format_pull_requests(file_name, pull_requests)
        except Exception as e:
            logger.error(f"Error listing pull requests for {file_name}: {e}")
            message = {"text": GENERIC_ERROR_TEXT}

        message = {"response_type": "ephemeral", "replace_original": False, **message}

        try:
            response_url = payload.get("response_url")
            if response_url:
                self.respond(response_url, message)
            else:
                channel = (payload.get("channel") or {}).get("id", "")
                self.post_message(channel, message)
        except SlackApiError as e:
            logger.error(f"Could not deliver pull requests for {file_name}: {e}")
