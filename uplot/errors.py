from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ParseIssue:
    message: str
    series_index: Optional[int] = None
    position: Optional[int] = None

    def describe(self) -> str:
        parts = []
        if self.series_index is not None:
            parts.append(f"series {self.series_index + 1}")
        if self.position is not None:
            parts.append(f"position {self.position + 1}")
        if not parts:
            return self.message
        return f"{', '.join(parts)}: {self.message}"


class UplotError(ValueError):
    """Base class for errors that abort the current input document."""

    def __init__(self, message: str, series_index: Optional[int] = None, position: Optional[int] = None) -> None:
        self.issue = ParseIssue(message=message, series_index=series_index, position=position)
        super().__init__(self.issue.describe())


class ParseError(UplotError):
    """Malformed delimited text."""


class CoercionError(UplotError):
    """A present field could not be read as a number."""


class UsageError(UplotError):
    """The command needs a series the data does not supply."""


class ConfigurationConflict(UplotError):
    pass


class RenderError(UplotError):
    """The renderer rejected the plot for this document."""
