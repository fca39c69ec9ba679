"""
Display-refresh clock interface. The scheduler asks for one callback per completed
cycle instead of running on a fixed-interval timer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class FrameClock(ABC):
    """Runs callbacks on the UI/loop thread, aligned to display refresh."""

    @abstractmethod
    def request_frame(self, callback: Callable[[], None]) -> int:
        """Run callback once at the next display refresh. Returns a handle for cancel_frame."""
        ...

    @abstractmethod
    def cancel_frame(self, handle: int) -> None:
        """Cancel a pending request. Unknown or already-fired handles are ignored."""
        ...

    @abstractmethod
    def post(self, callback: Callable[[], None]) -> None:
        """Thread-safe: run callback on the loop thread as soon as possible."""
        ...
