"""Base class for all tag matchers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from gitimages.errors import RegistryError
from gitimages.history import Commit
from gitimages.registry.auth import resolve_credentials
from gitimages.registry.client import RegistryClient
from gitimages.registry.parser import RegistryRef, parse_image_reference

logger = logging.getLogger(__name__)


class BaseMatcher(ABC):
    """Abstract base class for commit-to-tag matchers.

    A matcher parses its image reference and reads the repository's tag
    list exactly once, at construction. The list is a fixed snapshot for
    the matcher's lifetime.

    Subclasses must define :attr:`name`, :attr:`option` and
    :attr:`default` and implement :meth:`identify`.

    Args:
        image: Image repository reference (e.g. ``bigkevmcd/go-demo``).
        client: Registry client to use. Built from *image* when omitted.
        auths: ``registry=user:pass`` overrides used to build the client.
        timeout: HTTP timeout in seconds used to build the client.

    Raises:
        ConfigurationError: If *image* cannot be parsed.
        RegistryError: If the tag list cannot be retrieved.
    """

    #: Strategy name, as registered in the ``gitimages.matchers`` group.
    name: str = ""

    #: Name of the strategy's single setting (e.g. ``label``).
    option: str = ""

    #: Default value of :attr:`option`.
    default: str = ""

    def __init__(
        self,
        image: str,
        *,
        client: RegistryClient | None = None,
        auths: list[str] | None = None,
        timeout: float = 30,
    ) -> None:
        self.image = image
        self.ref: RegistryRef = parse_image_reference(image)
        self.client = client or _connect(self.ref, auths, timeout)
        try:
            self.tags: list[str] = list(self.client.list_tags())
        except RegistryError as exc:
            raise RegistryError(f"unable to get tags for {image!r}: {exc}") from exc
        logger.debug("Loaded %d tags for %s", len(self.tags), self.ref)

    @abstractmethod
    def identify(self, commit: Commit) -> str | None:
        """Return the tag built from *commit*, or ``None`` when no tag matches.

        Args:
            commit: Any object exposing a ``hexsha`` string.
        """


def _connect(ref: RegistryRef, auths: list[str] | None, timeout: float) -> RegistryClient:
    username, password = resolve_credentials(ref.registry, auths)
    return RegistryClient(
        registry=ref.registry,
        repository=ref.repository,
        username=username,
        password=password,
        timeout=timeout,
    )
