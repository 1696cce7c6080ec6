"""Exception hierarchy shared by the loaders, the builder and the samplers."""

from __future__ import annotations

from typing import Optional


class DiscMCError(Exception):
    """Base class for every error raised on purpose by discmc."""


class InputFormatError(DiscMCError, ValueError):
    """A configuration, topology, force-field or settings file is malformed."""

    def __init__(self, message: str, *, source: str = "<stream>", line_number: Optional[int] = None):
        self.message = message
        self.source = source
        self.line_number = line_number
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.line_number is None:
            return f"{self.source}: {self.message}"
        return f"{self.source}:{self.line_number}: {self.message}"


class InputMissingError(DiscMCError, FileNotFoundError):
    """A required input file does not exist or cannot be read."""


class InvariantError(DiscMCError, RuntimeError):
    """Internal consistency was violated, e.g. an object type outside the topology."""


class PlacementError(DiscMCError, RuntimeError):
    """Objects could not be placed or overlaps could not be resolved."""

    def __init__(self, message: str, remedy: str = ""):
        self.remedy = remedy
        text = f"{message} {remedy}".strip()
        super().__init__(text)
