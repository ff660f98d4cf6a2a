"""API key resolution: environment first, then the locally persisted key."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from content_wizard.errors import MissingCredentialError
from content_wizard.storage import read_text, write_text

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
HOME_ENV = "CONTENT_WIZARD_HOME"
DEFAULT_HOME = "~/.content-wizard"


def credential_path() -> Path:
    home = os.environ.get(HOME_ENV) or DEFAULT_HOME
    return Path(home).expanduser() / "api_key"


def resolve_api_key() -> str:
    """Return the API key to use for gateway calls.

    Raises:
        MissingCredentialError: neither the env var nor the local file holds a key.
    """
    env_key = os.environ.get(API_KEY_ENV, "").strip()
    if env_key:
        return env_key
    stored = read_text(credential_path())
    if stored:
        return stored
    raise MissingCredentialError(
        f"API key missing. Export {API_KEY_ENV} or run 'cwiz login' to store one."
    )


def has_api_key() -> bool:
    try:
        resolve_api_key()
    except MissingCredentialError:
        return False
    return True


def save_api_key(api_key: str) -> Path:
    """Persist *api_key* locally (owner-readable only) and return the path."""
    api_key = api_key.strip()
    if not api_key:
        raise ValueError("API key must not be empty")
    path = credential_path()
    write_text(path, api_key + "\n")
    path.chmod(0o600)
    logger.info("Stored API key in %s", path)
    return path


def clear_api_key() -> bool:
    """Remove the persisted key. Returns True if a file was deleted."""
    path = credential_path()
    if path.exists():
        path.unlink()
        logger.info("Removed stored API key %s", path)
        return True
    return False
