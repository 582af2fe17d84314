"""Parse image references into registry components."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from gitimages.errors import ConfigurationError

#: API host used for Docker Hub images.
DOCKER_HUB_REGISTRY = "registry-1.docker.io"


@dataclass(frozen=True)
class RegistryRef:
    """Parsed reference to an image repository on a registry.

    Attributes:
        registry: Registry hostname (e.g. ``registry-1.docker.io``).
        repository: Full repository path (e.g. ``library/nginx``).
        tag: Optional tag (defaults to ``latest``).
    """

    registry: str
    repository: str
    tag: str = "latest"

    def with_tag(self, tag: str) -> RegistryRef:
        """Return a copy of this reference pointing at *tag*."""
        return RegistryRef(self.registry, self.repository, tag)

    def __str__(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"


# Mapping of well-known web UIs and aliases to their actual registry API hosts.
_REGISTRY_MAP: dict[str, str] = {
    "hub.docker.com": DOCKER_HUB_REGISTRY,
    "docker.io": DOCKER_HUB_REGISTRY,
    "index.docker.io": DOCKER_HUB_REGISTRY,
}

# Pattern for a Docker Hub URL like hub.docker.com/r/nginxinc/nginx-unprivileged
# or hub.docker.com/library/nginx  (official images, no /r/ prefix)
_DOCKERHUB_PATH_RE = re.compile(
    r"^/?(?:r/)?(?P<repo>[a-z0-9._/-]+?)(?::(?P<tag>[a-zA-Z0-9._-]+))?$"
)

# A single path component of a repository name.
_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")

_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def parse_image_reference(ref: str) -> RegistryRef:
    """Parse an image reference or URL into a :class:`RegistryRef`.

    Supported formats:

    * ``https://hub.docker.com/r/nginxinc/nginx-unprivileged``
    * ``https://hub.docker.com/_/nginx``  (official shorthand)
    * ``myregistry.example.com:5000/myorg/myimage:mytag``
    * ``bigkevmcd/go-demo``  (Docker Hub namespace/name)
    * ``nginx:latest``  (bare image name, assumes Docker Hub)

    Args:
        ref: The image reference string.

    Returns:
        A :class:`RegistryRef` with the parsed components.

    Raises:
        ConfigurationError: If the reference cannot be parsed.
    """
    if not ref or ref != ref.strip():
        raise ConfigurationError(f"unable to parse image {ref!r}: empty or padded")
    if "@" in ref:
        raise ConfigurationError(
            f"unable to parse image {ref!r}: digest references are not supported"
        )

    if "://" in ref:
        parsed = _parse_full_url(ref)
    else:
        parsed = _parse_bare_reference(ref)

    _validate(ref, parsed)
    return parsed


def _parse_full_url(url: str) -> RegistryRef:
    """Parse a full URL with scheme."""
    parsed = urlparse(url)
    host = parsed.netloc
    path = parsed.path.strip("/")

    # Docker Hub web UI
    if parsed.hostname in _REGISTRY_MAP:
        return _parse_dockerhub_path(url, path)

    if not path:
        raise ConfigurationError(f"unable to parse image {url!r}: no repository path")

    repo, tag = _split_tag(path)
    return RegistryRef(registry=host, repository=repo, tag=tag)


def _parse_dockerhub_path(url: str, path: str) -> RegistryRef:
    """Parse the path component of a Docker Hub URL."""
    match = _DOCKERHUB_PATH_RE.match(path)
    if not match:
        raise ConfigurationError(f"unable to parse image {url!r}: bad Docker Hub path")

    repo = match.group("repo")
    tag = match.group("tag") or "latest"

    # Handle official images: "_/nginx" or bare "nginx" -> "library/nginx"
    if repo.startswith("_/"):
        repo = "library/" + repo[2:]
    elif "/" not in repo:
        repo = "library/" + repo

    return RegistryRef(registry=DOCKER_HUB_REGISTRY, repository=repo, tag=tag)


def _parse_bare_reference(ref: str) -> RegistryRef:
    """Parse a bare reference like ``nginx:latest`` or ``myregistry/org/img:tag``."""
    repo, tag = _split_tag(ref)

    # Heuristic: if the first segment contains a dot or colon, or is
    # "localhost", it's a registry host.
    parts = repo.split("/", 1)
    if len(parts) == 2 and (
        "." in parts[0] or ":" in parts[0] or parts[0] == "localhost"
    ):
        host, repo = parts
        if host not in _REGISTRY_MAP:
            return RegistryRef(registry=host, repository=repo, tag=tag)

    if "/" not in repo:
        repo = "library/" + repo
    return RegistryRef(registry=DOCKER_HUB_REGISTRY, repository=repo, tag=tag)


def _split_tag(ref: str) -> tuple[str, str]:
    """Split ``repo:tag`` into a ``(repo, tag)`` tuple.

    A colon followed by a path separator belongs to a ``host:port`` prefix,
    not to a tag.
    """
    repo, sep, tag = ref.rpartition(":")
    if sep and "/" not in tag:
        return repo, tag
    return ref, "latest"


def _validate(ref: str, parsed: RegistryRef) -> None:
    if not parsed.registry:
        raise ConfigurationError(f"unable to parse image {ref!r}: missing registry")
    for component in parsed.repository.split("/"):
        if not _COMPONENT_RE.match(component):
            raise ConfigurationError(
                f"unable to parse image {ref!r}: "
                f"invalid repository component {component!r}"
            )
    if not _TAG_RE.match(parsed.tag):
        raise ConfigurationError(f"unable to parse image {ref!r}: invalid tag {parsed.tag!r}")
