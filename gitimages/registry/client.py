"""HTTP client for the Docker Registry V2 API."""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urljoin

import requests

from gitimages.errors import RegistryError

logger = logging.getLogger(__name__)

# Docker Hub authentication endpoint.
_DOCKER_AUTH_URL = "https://auth.docker.io/token"
_DOCKER_AUTH_SERVICE = "registry.docker.io"

# Manifest media types indicating a multi-arch manifest list.
_INDEX_TYPES = {
    "application/vnd.docker.distribution.manifest.list.v2+json",
    "application/vnd.oci.image.index.v1+json",
}

_MANIFEST_ACCEPT = ", ".join(
    [
        "application/vnd.oci.image.index.v1+json",
        "application/vnd.docker.distribution.manifest.list.v2+json",
        "application/vnd.oci.image.manifest.v1+json",
        "application/vnd.docker.distribution.manifest.v2+json",
    ]
)

_CHALLENGE_PARAM_RE = re.compile(r'(\w+)="([^"]*)"')

__all__ = ["RegistryClient", "RegistryError"]


class RegistryClient:
    """Client for interacting with a Docker Registry V2 API.

    Handles token-based authentication transparently. Every request is
    bounded by *timeout*; a stalled registry surfaces as a
    :class:`RegistryError`.

    Args:
        registry: Registry hostname (e.g. ``registry-1.docker.io``).
        repository: Full repository path (e.g. ``library/nginx``).
        platform: ``os/arch[/variant]`` picked from multi-arch indexes.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        registry: str,
        repository: str,
        *,
        username: str | None = None,
        password: str | None = None,
        platform: str = "linux/amd64",
        timeout: float = 30,
    ) -> None:
        self.registry = registry
        self.repository = repository
        self.username = username
        self.password = password
        self.platform = platform
        self.timeout = timeout
        self._session = requests.Session()
        self._token: str | None = None
        self._base_url = f"https://{registry}/v2"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_tags(self) -> list[str]:
        """Return all tags for the repository, in registry order.

        Follows ``Link: <...>; rel="next"`` pagination.

        Raises:
            RegistryError: If the API call fails.
        """
        tags: list[str] = []
        url = f"{self._base_url}/{self.repository}/tags/list"
        while url:
            resp = self._get_response(url)
            tags.extend(_json(resp, url).get("tags") or [])
            next_link = resp.links.get("next", {}).get("url")
            url = urljoin(url, next_link) if next_link else ""
        logger.debug("Listed %d tags for %s/%s", len(tags), self.registry, self.repository)
        return tags

    def get_manifest(self, reference: str) -> dict[str, Any]:
        """Fetch the manifest (or image index) for a tag or digest."""
        return self._get(f"/{self.repository}/manifests/{reference}", accept=_MANIFEST_ACCEPT)

    def get_blob(self, digest: str) -> dict[str, Any]:
        """Fetch a JSON blob (typically an image config) by digest."""
        return self._get(f"/{self.repository}/blobs/{digest}")

    def fetch_image_labels(self, tag: str) -> dict[str, str]:
        """Return the ``config.Labels`` of the image behind *tag*.

        Multi-arch indexes are resolved to the entry matching
        :attr:`platform`.

        Returns:
            The label mapping, ``{}`` when the image has no labels.

        Raises:
            RegistryError: If the manifest or config cannot be fetched.
        """
        manifest = self.get_manifest(tag)
        if manifest.get("mediaType") in _INDEX_TYPES or "manifests" in manifest:
            digest = self._select_platform(tag, manifest.get("manifests") or [])
            manifest = self.get_manifest(digest)

        config_digest = (manifest.get("config") or {}).get("digest")
        if not config_digest:
            raise RegistryError(f"manifest for tag {tag!r} has no config descriptor")

        config = self.get_blob(config_digest)
        return (config.get("config") or {}).get("Labels") or {}

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _select_platform(self, tag: str, entries: list[dict[str, Any]]) -> str:
        want = self.platform.split("/")
        for entry in entries:
            platform = entry.get("platform") or {}
            have = [platform.get("os"), platform.get("architecture")]
            if len(want) > 2:
                have.append(platform.get("variant"))
            if have == want:
                return entry["digest"]
        raise RegistryError(f"no manifest for platform {self.platform} in index for tag {tag!r}")

    def _get(
        self,
        path: str,
        *,
        accept: str | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated GET request to the registry."""
        url = self._base_url + path
        return _json(self._get_response(url, accept=accept), url)

    def _get_response(self, url: str, *, accept: str | None = None) -> requests.Response:
        headers: dict[str, str] = {}
        if accept:
            headers["Accept"] = accept

        # Try without auth first, then authenticate on 401.
        resp = self._request(url, headers)
        if resp.status_code == 401:
            self._authenticate(resp)
            resp = self._request(url, headers)

        if resp.status_code != 200:
            raise RegistryError(
                f"Registry returned {resp.status_code} for {url}: {resp.text[:200]}"
            )
        return resp

    def _request(
        self,
        url: str,
        headers: dict[str, str],
    ) -> requests.Response:
        """Execute a single GET request, attaching the bearer token if available."""
        req_headers = {**headers}
        if self._token:
            req_headers["Authorization"] = f"Bearer {self._token}"

        logger.debug("GET %s", url)
        try:
            return self._session.get(url, headers=req_headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RegistryError(f"Request to {url} failed: {exc}") from exc

    def _authenticate(self, response: requests.Response) -> None:
        """Parse a ``WWW-Authenticate`` header and obtain a bearer token."""
        www_auth = response.headers.get("WWW-Authenticate", "")
        params = _parse_www_authenticate(www_auth)

        realm = params.get("realm", _DOCKER_AUTH_URL)
        service = params.get("service", _DOCKER_AUTH_SERVICE)
        scope = params.get("scope", f"repository:{self.repository}:pull")

        logger.debug("Authenticating: realm=%s service=%s scope=%s", realm, service, scope)

        auth = None
        if self.username and self.password:
            auth = (self.username, self.password)

        try:
            token_resp = self._session.get(
                realm,
                params={"service": service, "scope": scope},
                auth=auth,
                timeout=self.timeout,
            )
            token_resp.raise_for_status()
        except requests.RequestException as exc:
            raise RegistryError(f"Authentication against {realm} failed: {exc}") from exc

        body = _json(token_resp, realm)
        self._token = body.get("token") or body.get("access_token")


def _json(resp: requests.Response, url: str) -> dict[str, Any]:
    try:
        return resp.json()  # type: ignore[no-any-return]
    except ValueError as exc:
        raise RegistryError(f"Registry returned invalid JSON for {url}") from exc


def _parse_www_authenticate(header: str) -> dict[str, str]:
    """Parse a ``Bearer realm=...,service=...,scope=...`` header into a dict."""
    # Quoted values may contain commas (e.g. scope="repository:x:pull,push").
    return dict(_CHALLENGE_PARAM_RE.findall(header))
