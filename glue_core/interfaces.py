"""
@file interfaces.py
@brief Abstract base classes for automation resources.

Defines the interface a framework-specific resource must implement so the
engine can probe, re-activate and release it without knowing how the
underlying automation link works.
"""

from abc import ABC, abstractmethod


class IResource(ABC):
    """
    Abstract automation resource.

    One instance backs one session. The engine only calls these methods
    from inside tasks submitted to the exclusive queue, except for
    ``probe_foreground`` which is read-only and may be called through the
    queue's unsafe accessor.
    """

    @abstractmethod
    async def probe_foreground(self) -> bool:
        """
        Report whether the application under test is in the foreground.

        Returns:
            True when the application is observable
        """
        pass

    @abstractmethod
    async def activate(self) -> None:
        """
        Bring the application under test back to the foreground.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Release the underlying automation session.
        """
        pass
