"""
Interface definitions for external capabilities used by the core.

Pose estimation and face embedding are performed outside this package. The
core only needs to know whether such a capability became ready; retry and
backoff policy belongs to the caller.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class ExternalProvider(ABC):
    """Interface for an external pose or face capability."""

    @abstractmethod
    def initialize(self) -> bool:
        """Prepare the capability. Return True when it is ready."""
        pass

    def close(self) -> None:
        """Release resources held by the capability."""
        pass


def initialize_provider(provider: Optional[ExternalProvider]) -> bool:
    """
    Initialize a provider and report readiness as a boolean.

    No provider means the caller supplies already-computed data, which is
    always ready. Exceptions raised by the provider are logged and reported
    as a failed initialization.
    """
    if provider is None:
        return True

    try:
        ready = bool(provider.initialize())
    except Exception as e:
        logger.warning(f"Provider {type(provider).__name__} failed to initialize: {e}")
        return False

    if not ready:
        logger.warning(f"Provider {type(provider).__name__} reported not ready")
    return ready
