"""Exceptions raised by gitimages."""

from __future__ import annotations


class GitImagesError(Exception):
    """Base class for all gitimages errors."""


class ConfigurationError(GitImagesError):
    """Raised for a malformed image reference or an invalid targets file."""


class RegistryError(GitImagesError):
    """Raised when a registry API call fails."""


class TraversalError(GitImagesError):
    """Raised when the commit history cannot be cloned or walked."""
