"""Common helpers for adapters."""
from __future__ import annotations


class MissingDependencyError(RuntimeError):
    """Raised by adapters when a required library is not installed.

    The message names the package to install.
    """


class GatewayConfigError(RuntimeError):
    """Raised when a gateway cannot be built from the supplied configuration."""
