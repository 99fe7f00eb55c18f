"""Exception types raised by the aggregation core."""

from __future__ import annotations

from typing import Any


class SpellPanelsError(Exception):
    """Base class for all spell_panels errors."""


class ConfigError(SpellPanelsError):
    """Raised when a configuration value is missing or out of range."""


class DataError(SpellPanelsError):
    """Raised when a schema-valid spell carries an unusable value.

    Attributes:
        constraint: Human-readable description of the violated constraint.
        subject_id: Subject identifier of the offending spell, when known.
        spell_index: Position of the spell in the input stream, when known.
    """

    def __init__(
        self,
        constraint: str,
        subject_id: Any = None,
        spell_index: int | None = None,
    ) -> None:
        self.constraint = constraint
        self.subject_id = subject_id
        self.spell_index = spell_index
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.subject_id is not None:
            where.append(f"subject_id={self.subject_id!r}")
        if self.spell_index is not None:
            where.append(f"spell_index={self.spell_index}")
        if not where:
            return self.constraint
        return f"{self.constraint} ({', '.join(where)})"

    def with_context(self, subject_id: Any, spell_index: int | None) -> "DataError":
        """Return a copy of this error carrying the spell's identifying fields."""
        return DataError(self.constraint, subject_id=subject_id, spell_index=spell_index)
