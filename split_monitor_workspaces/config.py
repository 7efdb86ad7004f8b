"""Configuration loading for split-monitor-workspaces.

Reads an optional JSON file and validates it with Pydantic. A missing file
means defaults.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigLoadError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SPLIT_MONITOR_WORKSPACES_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "sway" / "split-monitor-workspaces.json"

# Must match codec.WORKSPACES_PER_MONITOR; duplicated to keep config importable on its own
MAX_WORKSPACE_COUNT = 10


def default_socket_path() -> Path:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    base = Path(runtime_dir) if runtime_dir else Path.home() / ".cache"
    return base / "split-monitor-workspaces" / "ipc.sock"


class SplitWorkspacesConfig(BaseModel):
    """Daemon configuration."""

    count: int = Field(
        MAX_WORKSPACE_COUNT,
        ge=1,
        le=MAX_WORKSPACE_COUNT,
        description="Workspaces per monitor (documents capacity; the namespace always reserves 10)",
    )
    keep_focused: bool = Field(
        False,
        description="Keep the previously focused monitor focused after a workspace change (inert)",
    )
    notifications: bool = Field(True, description="Show errors as desktop notifications")
    notification_timeout_ms: int = Field(5000, gt=0, description="Notification display time")
    socket_path: Path = Field(default_factory=default_socket_path, description="JSON-RPC socket")

    @field_validator("socket_path")
    @classmethod
    def validate_socket_path(cls, v: Path) -> Path:
        """Expand ~ in socket paths."""
        return v.expanduser()


def resolve_config_path(config_path: Optional[Path] = None) -> Path:
    if config_path is not None:
        return config_path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Optional[Path] = None) -> SplitWorkspacesConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path; defaults to $SPLIT_MONITOR_WORKSPACES_CONFIG
            or ~/.config/sway/split-monitor-workspaces.json

    Returns:
        Validated configuration, defaults if the file does not exist

    Raises:
        ConfigLoadError: Invalid JSON or validation failure
    """
    path = resolve_config_path(config_path)

    if not path.exists():
        logger.info(f"No configuration file at {path}, using defaults")
        return SplitWorkspacesConfig()

    logger.info(f"Loading configuration from {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigLoadError(str(path), f"invalid JSON: {e.msg} at line {e.lineno}")
    except OSError as e:
        raise ConfigLoadError(str(path), str(e))

    try:
        config = SplitWorkspacesConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigLoadError(str(path), str(e))

    if config.keep_focused:
        logger.info("keep_focused is set but currently has no effect")

    logger.debug(f"Config: {config.model_dump_json(indent=2)}")
    return config
