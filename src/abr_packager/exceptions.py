"""Custom exceptions raised by the abr_packager package."""
from __future__ import annotations


class PackagingError(RuntimeError):
    """Base error for the abr_packager package."""


class ConfigurationError(PackagingError):
    """Raised when options are invalid; always before any transfer starts."""


class DownloadError(PackagingError):
    """Raised when an input cannot be fetched into the staging directory."""


class UploadError(PackagingError):
    """Raised when the finished package cannot be published."""


class PackagerExecutionError(PackagingError):
    """Raised when Shaka Packager cannot be launched or exits non-zero."""
