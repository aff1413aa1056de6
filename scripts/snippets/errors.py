"""Error types for the snippet catalog."""

from __future__ import annotations

from typing import Any, Optional


class SnippetError(Exception):
    """Base error for the snippet catalog."""

    error_type = "snippet_error"

    def __init__(
        self,
        message: str,
        file: Optional[str] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.file = file
        if error_type:
            self.error_type = error_type

    def to_json(self) -> dict[str, Any]:
        """Serialize error to JSON format for machine parsing."""
        result: dict[str, Any] = {
            "error": self.error_type,
            "message": self.message,
        }
        if self.file:
            result["file"] = self.file
        return result

    def __str__(self) -> str:
        if self.file:
            return f"{self.message} | file: {self.file}"
        return self.message


class ConfigError(SnippetError):
    """Error in catalog configuration."""

    error_type = "config_invalid"


class DuplicateIdError(SnippetError):
    """Two corpus files resolve to the same entry id."""

    error_type = "duplicate_id"

    def __init__(self, entry_id: str, first: str, second: str):
        super().__init__(
            f"Duplicate snippet id '{entry_id}' ({first} and {second})",
            file=second,
        )
        self.entry_id = entry_id
        self.paths = (first, second)


class MalformedEntryError(SnippetError):
    """Integration or topic cannot be derived for a corpus file."""

    error_type = "malformed_entry"


class EmptyManifestError(SnippetError):
    """A project manifest declared no dependencies."""

    error_type = "empty_manifest"


class ManifestError(SnippetError):
    """A project manifest could not be read."""

    error_type = "manifest_invalid"


class BudgetExceededError(SnippetError):
    """Selected entries do not fit the budget under the 'fail' policy."""

    error_type = "budget_exceeded"

    def __init__(
        self,
        message: str,
        entry_count: int,
        total_bytes: int,
        max_entries: Optional[int] = None,
        max_bytes: Optional[int] = None,
    ):
        super().__init__(message)
        self.entry_count = entry_count
        self.total_bytes = total_bytes
        self.max_entries = max_entries
        self.max_bytes = max_bytes

    def to_json(self) -> dict[str, Any]:
        result = super().to_json()
        result.update({
            "entry_count": self.entry_count,
            "total_bytes": self.total_bytes,
            "max_entries": self.max_entries,
            "max_bytes": self.max_bytes,
        })
        return result
