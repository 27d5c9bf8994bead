"""
Process-wide configuration.

A Config is built once at startup and handed to every component that needs
it. It is frozen and never read from ambient global state.

Environment Variables:
    CI_REPO_ROOT: Directory holding repository working copies (default: repos)
    CI_LOG_ROOT: Directory holding build logs (default: logs)
    CI_HTTP_ROOT: Public URL of this server, used in status links
    CI_OAUTH_TOKEN: GitHub token used to publish commit statuses (required)
    CI_WEBHOOK_SECRET: Secret shared with the GitHub webhook (required)
    CI_DB_PATH: Build history database path (default: ci_builds.db)
    CI_GITHUB_API_URL: GitHub API base URL (default: https://api.github.com)
    CI_BUILD_FILE: Nix file declaring the jobs (default: ci.nix)
    CI_COMMAND_TIMEOUT: Seconds before an external command is killed, 0 disables
    CI_HOST / CI_PORT: Address the HTTP server binds to
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .exceptions import ConfigError

DEFAULT_HTTP_ROOT = "http://localhost:8080"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_COMMAND_TIMEOUT = 3600.0


@dataclass(frozen=True)
class Config:
    """Immutable settings shared by every pipeline component."""

    repo_root: Path
    log_root: Path
    http_root: str
    oauth_token: str
    webhook_secret: str
    db_path: str = "ci_builds.db"
    github_api_url: str = DEFAULT_GITHUB_API_URL
    build_file: str = "ci.nix"
    command_timeout: float | None = DEFAULT_COMMAND_TIMEOUT  # None disables
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "Config":
        """
        Build a Config from environment variables.

        Args:
            environ: Environment mapping (default: os.environ)
            **overrides: Values that take priority over the environment,
                typically parsed command-line arguments. None means unset.

        Returns:
            The frozen configuration

        Raises:
            ConfigError: If a required value is missing or a number is invalid
        """
        env = os.environ if environ is None else environ
        given = {k: v for k, v in overrides.items() if v is not None}

        def value(key: str, var: str, default: str = "") -> str:
            if key in given:
                return str(given[key])
            return env.get(var, default)

        oauth_token = value("oauth_token", "CI_OAUTH_TOKEN")
        if not oauth_token:
            raise ConfigError("CI_OAUTH_TOKEN is required")

        webhook_secret = value("webhook_secret", "CI_WEBHOOK_SECRET")
        if not webhook_secret:
            raise ConfigError("CI_WEBHOOK_SECRET is required")

        raw_timeout = value(
            "command_timeout", "CI_COMMAND_TIMEOUT", str(DEFAULT_COMMAND_TIMEOUT)
        )
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ConfigError(f"Invalid CI_COMMAND_TIMEOUT={raw_timeout}")
        if timeout < 0:
            raise ConfigError(f"Invalid CI_COMMAND_TIMEOUT={raw_timeout}")

        raw_port = value("port", "CI_PORT", "8080")
        try:
            port = int(raw_port)
        except ValueError:
            raise ConfigError(f"Invalid CI_PORT={raw_port}")

        return cls(
            repo_root=Path(value("repo_root", "CI_REPO_ROOT", "repos")),
            log_root=Path(value("log_root", "CI_LOG_ROOT", "logs")),
            http_root=value("http_root", "CI_HTTP_ROOT", DEFAULT_HTTP_ROOT).rstrip("/"),
            oauth_token=oauth_token,
            webhook_secret=webhook_secret,
            db_path=value("db_path", "CI_DB_PATH", "ci_builds.db"),
            github_api_url=value(
                "github_api_url", "CI_GITHUB_API_URL", DEFAULT_GITHUB_API_URL
            ).rstrip("/"),
            build_file=value("build_file", "CI_BUILD_FILE", "ci.nix"),
            command_timeout=timeout or None,
            host=value("host", "CI_HOST", "0.0.0.0"),
            port=port,
        )
