"""Conversion between dataclass models and JSON-compatible data.

Step results and profiles are stored as JSON. Both directions go through a
pydantic ``TypeAdapter`` built for the model type, so a stored payload is
validated back into the exact typed model it came from.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter

__all__ = ["from_jsonable", "to_jsonable"]


@lru_cache(maxsize=None)
def _adapter(tp: Any) -> TypeAdapter[Any]:
    return TypeAdapter(tp)


def to_jsonable(value: Any) -> Any:
    """Convert a model into JSON-compatible primitives.

    Args:
        value: A dataclass instance, container, enum, date or primitive.

    Returns:
        The same data made of dicts, lists, strings, numbers, bools and None.
    """
    return _adapter(type(value)).dump_python(value, mode="json")


def from_jsonable(tp: Any, value: Any) -> Any:
    """Validate JSON-compatible data into a typed value.

    Args:
        tp: The target type, such as a step result class.
        value: The JSON-compatible data.

    Returns:
        An instance of ``tp``.

    Raises:
        pydantic.ValidationError: If ``value`` does not match ``tp``.
    """
    return _adapter(tp).validate_python(value)
