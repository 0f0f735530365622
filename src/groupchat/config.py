"""
Endpoint Settings

Process-wide connection settings. The chat client reads the endpoint once
per connect; changing it while connected takes effect on the next connect.

Configuration sources, highest priority first:
    - the JSON settings file (written by set_endpoint)
    - GROUPCHAT_HOST / GROUPCHAT_PORT environment variables
    - DEFAULT_HOST / DEFAULT_PORT

GROUPCHAT_SETTINGS overrides the settings file location.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .errors import ValidationError
from .schemas import Endpoint

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000

BASE_DIR = Path.home() / ".groupchat"
SETTINGS_PATH = BASE_DIR / "settings.json"


def default_settings_path() -> Path:
    """Return the settings file path, honouring GROUPCHAT_SETTINGS."""
    override = os.environ.get("GROUPCHAT_SETTINGS")
    if override:
        return Path(override)
    return SETTINGS_PATH


def default_endpoint() -> Endpoint:
    """
    Endpoint used when nothing has been saved yet.

    Invalid environment values are logged and ignored.
    """
    host = os.environ.get("GROUPCHAT_HOST", DEFAULT_HOST)
    port = os.environ.get("GROUPCHAT_PORT", str(DEFAULT_PORT))
    try:
        return Endpoint.parse(host, port)
    except ValidationError as e:
        logger.warning("Ignoring invalid endpoint from environment: %s", e)
        return Endpoint(DEFAULT_HOST, DEFAULT_PORT)


def _atomic_write_json(path: Path, payload: Dict[str, object]) -> None:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    content = json.dumps(payload, indent=2, sort_keys=True)

    with open(tmp_path, "w", encoding="utf-8") as handle:
        handle.write(content)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)


def load_endpoint(path: Path) -> Optional[Endpoint]:
    """
    Read a saved endpoint.

    Returns:
        The saved Endpoint, or None if the file is missing or malformed.
    """
    try:
        data = json.loads(path.expanduser().read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError, ValueError) as e:
        logger.warning("Could not read settings from %s: %s", path, e)
        return None

    if not isinstance(data, dict):
        return None
    try:
        return Endpoint.parse(str(data["host"]), str(data["port"]))
    except (KeyError, ValidationError) as e:
        logger.warning("Ignoring invalid settings in %s: %s", path, e)
        return None


def save_endpoint(endpoint: Endpoint, path: Path) -> None:
    """Persist an endpoint to the settings file."""
    _atomic_write_json(path, {"host": endpoint.host, "port": endpoint.port})


class SettingsStore:
    """
    Holds the configured endpoint and persists changes to disk.

    Attributes:
        path: Settings file location (None disables persistence)
    """

    def __init__(self, path: Optional[Path] = None, persist: bool = True):
        self.path: Optional[Path] = (
            (path or default_settings_path()) if persist else None
        )
        self._endpoint: Optional[Endpoint] = None

    def get_endpoint(self) -> Endpoint:
        """Return the current endpoint, loading it on first use."""
        if self._endpoint is None:
            saved = load_endpoint(self.path) if self.path else None
            self._endpoint = saved or default_endpoint()
            logger.debug("Using endpoint %s", self._endpoint)
        return self._endpoint

    def set_endpoint(self, endpoint: Endpoint) -> None:
        """
        Replace the endpoint and persist it.

        Args:
            endpoint: New endpoint; used from the next connect onwards
        """
        self._endpoint = endpoint
        if self.path is not None:
            try:
                save_endpoint(endpoint, self.path)
            except OSError as e:
                logger.error("Could not save settings to %s: %s", self.path, e)
                raise
        logger.info("Endpoint set to %s", endpoint)
