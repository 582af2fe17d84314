"""Credential resolution for container registries."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# Hostnames that all refer to Docker Hub.
_DOCKER_HUB_ALIASES = ("docker.io", "registry-1.docker.io", "index.docker.io")


def resolve_credentials(
    registry: str,
    cli_auths: list[str] | None = None,
) -> tuple[str | None, str | None]:
    """Resolve credentials for a given registry host.

    Order of precedence:
    1. CLI-provided auth overrides (--auth flag)
    2. Host-specific env vars (e.g. GITIMAGES_AUTH_GHCR_IO_USERNAME)
    3. Global env vars (GITIMAGES_USERNAME / GITIMAGES_PASSWORD)
    4. Docker config.json (~/.docker/config.json)

    Args:
        registry: The registry hostname to authenticate against.
        cli_auths: A list of string overrides in the form 'registry=user:pass'.

    Returns:
        A tuple of (username, password) if found, otherwise (None, None).
    """
    hosts = _aliases(registry)

    # 1. Check CLI overrides
    for auth_override in cli_auths or []:
        if "=" not in auth_override:
            logger.warning("Ignoring malformed --auth value (expected registry=user:pass)")
            continue
        domain, creds = auth_override.split("=", 1)
        if domain in hosts and ":" in creds:
            user, pwd = creds.split(":", 1)
            logger.debug("Using CLI override credentials for %s", registry)
            return user, pwd

    # 2. Check host-specific environment variables
    for host in hosts:
        env_host = host.upper().replace(".", "_").replace(":", "_").replace("-", "_")
        host_user = os.environ.get(f"GITIMAGES_AUTH_{env_host}_USERNAME")
        host_pass = os.environ.get(f"GITIMAGES_AUTH_{env_host}_PASSWORD")
        if host_user and host_pass:
            logger.debug("Using host-specific env vars for %s", registry)
            return host_user, host_pass

    # 3. Check global environment variables
    global_user = os.environ.get("GITIMAGES_USERNAME")
    global_pass = os.environ.get("GITIMAGES_PASSWORD")
    if global_user and global_pass:
        logger.debug("Using global env vars for %s", registry)
        return global_user, global_pass

    # 4. Check Docker config.json
    return _from_docker_config(registry, hosts)


def _aliases(registry: str) -> tuple[str, ...]:
    if registry in _DOCKER_HUB_ALIASES:
        return _DOCKER_HUB_ALIASES
    return (registry,)


def _from_docker_config(
    registry: str, hosts: tuple[str, ...]
) -> tuple[str | None, str | None]:
    docker_config_path = Path.home() / ".docker" / "config.json"
    try:
        if not docker_config_path.exists():
            return None, None
        with open(docker_config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug("Failed to read %s: %s", docker_config_path, e)
        return None, None

    auths = config.get("auths", {})
    candidates: list[str] = []
    for host in hosts:
        candidates.extend(
            [host, f"https://{host}", f"https://{host}/v1/", f"https://{host}/v2/"]
        )
    if registry in _DOCKER_HUB_ALIASES:
        candidates.append("https://index.docker.io/v1/")

    for candidate in candidates:
        entry = auths.get(candidate) or {}
        if "auth" not in entry:
            continue
        try:
            auth_str = base64.b64decode(entry["auth"]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.debug("Failed to decode auth from config.json for %s: %s", candidate, e)
            continue
        if ":" in auth_str:
            user, pwd = auth_str.split(":", 1)
            logger.debug("Using Docker config.json credentials for %s", registry)
            return user, pwd

    return None, None
