"""Encoding of cached values to and from bytes."""

import pickle
from typing import Any, Optional

from kvcache.core.exceptions import SerializationError


def serialize(value: Any) -> bytes:
    try:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
    except (pickle.PicklingError, TypeError, AttributeError, RecursionError) as e:
        raise SerializationError(f"cannot encode {type(value).__name__}: {e}") from e


def unserialize(payload: Optional[bytes]) -> Any:
    if payload is None:
        return None
    try:
        return pickle.loads(payload)
    except (
        pickle.UnpicklingError,
        EOFError,
        ValueError,
        TypeError,
        AttributeError,
        ImportError,
        IndexError,
    ) as e:
        raise SerializationError(f"cannot decode stored value: {e}") from e
