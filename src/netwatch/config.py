"""Global configuration — XDG paths, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "netwatch"
    return Path.home() / ".local" / "share" / "netwatch"


def _default_config_dir() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "netwatch"
    return Path.home() / ".config" / "netwatch"


@dataclass
class NetWatchConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    config_dir: Path = field(default_factory=_default_config_dir)
    rules_path: Path | None = None
    poll_interval: float = 2.0
    poll_timeout: float = 5.0
    backoff_initial: float = 1.0
    backoff_max: float = 30.0
    event_log_size: int = 200
    recent_changes_limit: int = 6
    web_host: str = "127.0.0.1"  # Hardcoded — never 0.0.0.0
    web_port: int = 8471
    verbose: bool = False

    @property
    def export_dir(self) -> Path:
        return self.data_dir / "exports"

    @classmethod
    def load(cls) -> NetWatchConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_interval = os.environ.get("NETWATCH_POLL_INTERVAL")
        if env_interval:
            config.poll_interval = float(env_interval)

        env_timeout = os.environ.get("NETWATCH_POLL_TIMEOUT")
        if env_timeout:
            config.poll_timeout = float(env_timeout)

        env_log_size = os.environ.get("NETWATCH_EVENT_LOG_SIZE")
        if env_log_size:
            config.event_log_size = int(env_log_size)

        env_port = os.environ.get("NETWATCH_WEB_PORT")
        if env_port:
            config.web_port = int(env_port)

        # Explicit rules file wins over the config dir's rules.yaml
        env_rules = os.environ.get("NETWATCH_RULES")
        if env_rules:
            config.rules_path = Path(env_rules)
        else:
            default_rules = config.config_dir / "rules.yaml"
            if default_rules.is_file():
                config.rules_path = default_rules

        return config
