"""Capture backend protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol


if TYPE_CHECKING:
    from detectlens.types import CameraFrame


class CaptureProtocol(Protocol):
    """Protocol for capture backends producing planar camera frames."""

    def open(self) -> bool:
        """Open the capture backend."""
        ...

    def read(self) -> tuple[bool, CameraFrame | None]:
        """Read a frame; the caller owns it until ``close()``."""
        ...

    def release(self) -> None:
        """Release backend resources."""
        ...

    def is_opened(self) -> bool:
        """Return True when the backend is open."""
        ...

    def get_info(self) -> dict:
        """Return backend metadata for diagnostics."""
        ...
