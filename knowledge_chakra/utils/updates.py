"""Helpers for partial (PATCH-style) updates."""

from typing import Any, Iterable, Mapping

from knowledge_chakra.exceptions import InvalidStateError


def reject_null_fields(changes: Mapping[str, Any], required: Iterable[str]) -> None:
    """Raise when a partial update sends an explicit null for a required field."""

    for name in required:
        if name in changes and changes[name] is None:
            raise InvalidStateError(f"{name} cannot be null", field=name)
