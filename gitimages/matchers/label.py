"""Label matcher — finds the tag whose image label records the commit."""

from __future__ import annotations

import logging

from gitimages.errors import RegistryError
from gitimages.history import Commit
from gitimages.matchers.base import BaseMatcher
from gitimages.registry.client import RegistryClient

logger = logging.getLogger(__name__)

#: OCI annotation holding the source revision an image was built from.
REVISION_LABEL = "org.opencontainers.image.revision"


class LabelMatcher(BaseMatcher):
    """Match commits against an OCI image label (default: source revision)."""

    name = "label"
    option = "label"
    default = REVISION_LABEL

    def __init__(
        self,
        image: str,
        label: str = REVISION_LABEL,
        *,
        client: RegistryClient | None = None,
        auths: list[str] | None = None,
        timeout: float = 30,
    ) -> None:
        super().__init__(image, client=client, auths=auths, timeout=timeout)
        self.label = label
        self._tag_labels: dict[str, dict[str, str]] = {}

    def identify(self, commit: Commit) -> str | None:
        """Return the first tag whose *label* equals ``commit.hexsha``.

        Labels are fetched lazily, one tag at a time, and each tag is
        fetched at most once per matcher.
        """
        for tag in self.tags:
            labels = self.labels_for(tag)
            if labels.get(self.label) == commit.hexsha:
                logger.debug("Tag %s matches commit %s", tag, commit.hexsha)
                return tag
        return None

    def labels_for(self, tag: str) -> dict[str, str]:
        """Return the (cached) labels of *tag*, fetching them on first use."""
        if tag not in self._tag_labels:
            try:
                labels = self.client.fetch_image_labels(tag)
            except RegistryError as exc:
                raise RegistryError(
                    f"failed to get image details for image "
                    f"'{self.ref.with_tag(tag)}': {exc}"
                ) from exc
            logger.debug("Fetched %d labels for %s", len(labels or {}), tag)
            self._tag_labels[tag] = labels or {}
        return self._tag_labels[tag]
