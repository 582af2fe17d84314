"""Tag-prefix matcher — tags named after (a prefix of) the commit hash."""

from __future__ import annotations

from gitimages.history import Commit
from gitimages.matchers.base import BaseMatcher
from gitimages.registry.client import RegistryClient


class TagPrefixMatcher(BaseMatcher):
    """Match commits against tag names like ``sha-<short hash>``."""

    name = "prefix"
    option = "prefix"
    default = "sha-"

    def __init__(
        self,
        image: str,
        prefix: str = "sha-",
        *,
        client: RegistryClient | None = None,
        auths: list[str] | None = None,
        timeout: float = 30,
    ) -> None:
        super().__init__(image, client=client, auths=auths, timeout=timeout)
        self.prefix = prefix

    def identify(self, commit: Commit) -> str | None:
        """Return the first tag whose name, minus :attr:`prefix`, starts ``commit.hexsha``.

        Tags without the prefix are compared by their full name. No
        registry calls are made.
        """
        for tag in self.tags:
            if commit.hexsha.startswith(tag.removeprefix(self.prefix)):
                return tag
        return None
