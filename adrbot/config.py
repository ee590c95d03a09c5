"""Configuration management for the ADR bot."""

import re
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # GitHub repository holding the ADRs
    github_token: Optional[str] = Field(default=None)
    github_user: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("github_user", "github_owner"),
    )
    github_repo: Optional[str] = Field(default=None)
    github_default_branch: str = Field(default="main")
    github_path_to_adrs: str = Field(default="docs/decisions")
    github_adr_regex: str = Field(
        default=r"\d{4}-.*\.md",
        description="Regular expression matching ADR file names",
    )
    github_adr_template: str = Field(default="docs/decisions/adr-template.md")
    github_api_url: str = Field(default="https://api.github.com")
    github_web_url: str = Field(default="https://github.com")

    # Slack Configuration
    slack_bot_token: Optional[str] = Field(default=None)
    slack_signing_secret: Optional[str] = Field(default=None)
    slack_command: str = Field(default="/adr")

    # Pull request history
    pr_page_size: int = Field(default=100)
    pr_max_pages: int = Field(
        default=50,
        description="Upper bound on pull request pages fetched per index build",
    )

    # What to do with an ADR whose frontmatter cannot be parsed
    adr_error_policy: Literal["raise", "skip"] = Field(default="raise")

    # HTTP Client Defaults
    http_timeout_seconds: float = Field(default=15.0)

    # Production Settings
    environment: str = Field(default="development")  # development, staging, production

    # Bot Configuration
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False, description="Emit logs as JSON lines")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def adr_ref(self) -> str:
        """Git object expression for the ADR directory, e.g. ``main:docs/decisions``."""
        return f"{self.github_default_branch}:{self.github_path_to_adrs}"

    @property
    def graphql_url(self) -> str:
        return f"{self.github_api_url.rstrip('/')}/graphql"

    def adr_pattern(self) -> re.Pattern:
        """Pattern tested against bare file names from the ADR directory."""
        return re.compile(self.github_adr_regex)

    def adr_path_pattern(self) -> re.Pattern:
        """Pattern tested against repository paths touched by pull requests."""
        return re.compile(f"{self.github_path_to_adrs}/{self.github_adr_regex}")

    def adr_blob_url(self, file_name: str) -> str:
        """Public link to an ADR file on the default branch."""
        return (
            f"{self.github_web_url.rstrip('/')}/{self.github_user}/{self.github_repo}"
            f"/blob/{self.github_default_branch}/{self.github_path_to_adrs}/{file_name}"
        )

    def validate_github_config(self) -> None:
        """Validate that the GitHub repository is configured."""
        missing = [
            key
            for key, value in {
                "GITHUB_TOKEN": self.github_token,
                "GITHUB_USER": self.github_user,
                "GITHUB_REPO": self.github_repo,
            }.items()
            if not value
        ]
        if missing:
            raise ValueError("GitHub repository misconfigured; missing: " + ", ".join(missing))

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    def missing_settings(self) -> List[str]:
        """Names of unset environment variables needed to serve Slack traffic."""
        required = {
            "GITHUB_TOKEN": self.github_token,
            "GITHUB_USER": self.github_user,
            "GITHUB_REPO": self.github_repo,
            "SLACK_BOT_TOKEN": self.slack_bot_token,
            "SLACK_SIGNING_SECRET": self.slack_signing_secret,
        }
        return [key for key, value in required.items() if not value]


# Global settings instance
settings = Settings()
