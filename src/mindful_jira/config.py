"""Configuration stored in `~/.config/mindful-jira/config.toml`.

Example config:
  jira_url = "https://example.atlassian.net"
  email = "me@example.com"
  api_token = "..."
  refresh_interval = 60
  sort = "remote"

  [[status_filters]]
  name = "Done"
  excluded = true
"""

import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path

import tomli_w

from mindful_jira.core.errors import ConfigError
from mindful_jira.core.filtering import SortKey
from mindful_jira.core.types import StatusFilter

CONFIG_FILENAME = "config.toml"
ANNOTATIONS_FILENAME = "annotations.toml"
DEBUG_LOG_FILENAME = "debug.log"
HOME_ENV_VAR = "MINDFUL_JIRA_HOME"

DEFAULT_REFRESH_INTERVAL = 60.0
DEFAULT_EXCLUDED_STATUSES = (
    "Backlog",
    "Done",
    "Closed",
    "Resolved",
    "Rejected",
    "Approved Requirement",
)


@dataclass(frozen=True)
class JiraConfig:
    """In-memory representation of config.toml.

    Handed explicitly to the Jira client; nothing reads it from global state.
    """

    jira_url: str
    email: str
    api_token: str
    status_filters: tuple[StatusFilter, ...]
    refresh_interval: float
    sort_key: SortKey

    @property
    def base_url(self) -> str:
        return self.jira_url.rstrip("/")


def default_status_filters() -> tuple[StatusFilter, ...]:
    return tuple(StatusFilter(name=name, excluded=True) for name in DEFAULT_EXCLUDED_STATUSES)


def default_config_dir() -> Path:
    """Resolve the config directory, honouring MINDFUL_JIRA_HOME."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / "mindful-jira"


def load_config(config_dir: Path) -> JiraConfig:
    """Load config.toml from `config_dir`.

    Args:
        config_dir: Directory holding config.toml

    Returns:
        Parsed JiraConfig with defaults for optional keys

    Raises:
        ConfigError: If the file is missing, unparsable, or lacks credentials
    """
    cfg_path = config_dir / CONFIG_FILENAME
    if not cfg_path.exists():
        msg = f"{cfg_path} not found. Run 'mindful-jira setup' to create it."
        raise ConfigError(msg)

    try:
        data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse {cfg_path}: {e}") from e

    missing = [name for name in ("jira_url", "email", "api_token") if not data.get(name)]
    if missing:
        raise ConfigError(f"{cfg_path} is missing: {', '.join(missing)}")

    raw_filters = data.get("status_filters")
    if raw_filters is None:
        status_filters = default_status_filters()
    else:
        status_filters = tuple(
            StatusFilter(name=str(item["name"]), excluded=bool(item.get("excluded", True)))
            for item in raw_filters
            if isinstance(item, dict) and item.get("name")
        )

    sort_value = str(data.get("sort", SortKey.REMOTE.value))
    try:
        sort_key = SortKey(sort_value)
    except ValueError:
        sort_key = SortKey.REMOTE

    return JiraConfig(
        jira_url=str(data["jira_url"]),
        email=str(data["email"]),
        api_token=str(data["api_token"]),
        status_filters=status_filters,
        refresh_interval=float(data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL)),
        sort_key=sort_key,
    )


def save_config(config_dir: Path, config: JiraConfig) -> Path:
    """Write `config` to config.toml, creating the directory if needed.

    Returns:
        Path of the written file
    """
    config_dir.mkdir(parents=True, exist_ok=True)
    cfg_path = config_dir / CONFIG_FILENAME
    data = {
        "jira_url": config.jira_url,
        "email": config.email,
        "api_token": config.api_token,
        "refresh_interval": config.refresh_interval,
        "sort": config.sort_key.value,
        "status_filters": [
            {"name": sf.name, "excluded": sf.excluded} for sf in config.status_filters
        ],
    }
    write_atomically(cfg_path, tomli_w.dumps(data))
    return cfg_path


def write_atomically(path: Path, content: str) -> None:
    """Replace `path` with `content` through a fsynced temporary file.

    Readers see either the old or the new file, never a partial write.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
