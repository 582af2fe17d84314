"""Load and validate targets files.

A targets file lists the (git repository, image) pairs to correlate::

    targets:
      - name: go-demo
        repository: https://github.com/bigkevmcd/go-demo
        branch: master
        image: bigkevmcd/go-demo
        strategy: label
      - name: image-updater
        repository: https://github.com/gitops-tools/image-updater
        branch: main
        image: bigkevmcd/image-updater
        strategy: prefix
        prefix: sha-

Files may be YAML or JSON, local or served over HTTP(S).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema
import requests
import yaml

from gitimages.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    """One repository/image pair to identify."""

    name: str
    repository: str
    image: str
    branch: str | None = None
    strategy: str = "label"
    label: str | None = None
    prefix: str | None = None

    def setting(self, option: str) -> str | None:
        """Return the strategy setting named *option* (``label`` or ``prefix``)."""
        return getattr(self, option, None)


def load_targets(location: str | Path, timeout: float = 30) -> list[Target]:
    """Load, validate and return the targets defined at *location*.

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated.
    """
    raw = _load_document(str(location), timeout)
    schema = load_schema("targets.schema.json")
    try:
        jsonschema.validate(instance=raw, schema=schema)
    except jsonschema.ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigurationError(
            f"Invalid targets file {location}: {exc.message} (at {path})"
        ) from exc

    targets = [Target(**entry) for entry in raw["targets"]]
    names = [t.name for t in targets]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(
            f"Invalid targets file {location}: duplicate target names {', '.join(duplicates)}"
        )
    logger.debug("Loaded %d target(s) from %s", len(targets), location)
    return targets


def _load_document(location: str, timeout: float) -> Any:
    if location.startswith(("http://", "https://")):
        logger.debug("Downloading targets from %s", location)
        try:
            resp = requests.get(location, timeout=timeout)
        except requests.RequestException as exc:
            raise ConfigurationError(f"Failed to download targets from {location}: {exc}") from exc
        if resp.status_code != 200:
            raise ConfigurationError(
                f"Failed to download targets from {location}: HTTP {resp.status_code}"
            )
        text = resp.text
        is_yaml = not location.endswith(".json")
    else:
        path = Path(location)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"Cannot read targets file {location}: {exc}") from exc
        is_yaml = path.suffix in (".yaml", ".yml")

    try:
        if is_yaml:
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigurationError(f"Cannot parse targets file {location}: {exc}") from exc


def load_schema(filename: str) -> dict[str, Any]:
    """Load a JSON Schema file from the ``gitimages.schemas`` package."""
    schema_ref = resources.files("gitimages.schemas").joinpath(filename)
    return json.loads(schema_ref.read_text(encoding="utf-8"))  # type: ignore[no-any-return]
