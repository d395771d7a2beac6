"""JSON config file loading utilities."""

import json
import logging
from pathlib import Path
from typing import Any, Union

import requests

from faceex.constants import CONFIG_DIR, FETCH_TIMEOUT, SCHEMA_DIR

logger = logging.getLogger(__name__)

Source = Union[str, Path]


class ConfigSourceError(Exception):
    """A configuration source could not be read or parsed."""

    def __init__(self, source: Source, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


def load_json(path: Path) -> Any:
    """Load and return parsed JSON from a file."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def save_json(path: Path, data: Any, indent: int = 4) -> None:
    """Write ``data`` as indented JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent)
        f.write("\n")


def load_config(name: str) -> Any:
    """Load a config file from assets/config/."""
    return load_json(CONFIG_DIR / name)


def load_schema(name: str) -> dict:
    """Load a JSON schema from assets/schemas/."""
    return load_json(SCHEMA_DIR / name)


def is_url(source: Source) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


def fetch_json(source: Source) -> Any:
    """Read JSON from a file path or an http(s) URL.

    Every transport and parse failure is raised as :class:`ConfigSourceError`
    so callers have a single error type to report to the user.
    """
    if is_url(source):
        try:
            response = requests.get(source, timeout=FETCH_TIMEOUT)
            response.raise_for_status()
            return response.json()
        except ValueError as e:
            raise ConfigSourceError(source, f"malformed JSON ({e})") from e
        except requests.RequestException as e:
            raise ConfigSourceError(source, f"request failed ({e})") from e

    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigSourceError(source, f"cannot read file ({e})") from e
    if not text.strip():
        raise ConfigSourceError(source, "no content to parse")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigSourceError(source, f"malformed JSON ({e})") from e
