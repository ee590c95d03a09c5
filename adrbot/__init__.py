"""Slack bot for browsing and creating Architecture Decision Records on GitHub."""

__version__ = "1.0.0"
