"""pgvector literal encoding for embeddings.

The store receives vectors as text in the form ``[v1,v2,...,vn]`` and casts
them with ``::vector``; this module is the only place that format is built.
"""

import math
from numbers import Real
from typing import Iterable

from shared.errors import DependencyError, ValidationError


def _format_component(value: float) -> str:
    # integral values print without a fractional part: [1,2,3], not [1.0,2.0,3.0]
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def encode_vector(values: Iterable[float], expected_dim: int | None = None) -> str:
    """Encode an embedding as a pgvector literal.

    Args:
        values (Iterable[float]): The embedding components.
        expected_dim (int | None): Dimension the store column was created with. When
            given, vectors of any other length are rejected.

    Returns:
        str: The literal, e.g. "[0.1,-2,3.5]".

    Raises:
        DependencyError: If a component is not a finite real number, the vector is
            empty, or its length differs from expected_dim.
    """
    components: list[str] = []
    for value in values:
        if isinstance(value, bool) or not isinstance(value, Real):
            raise DependencyError("Embedding contains non-numeric values.", details={"value": repr(value)})
        number = float(value)
        if not math.isfinite(number):
            raise DependencyError("Embedding contains non-finite values.")
        components.append(_format_component(number))

    if not components:
        raise DependencyError("Embedding is empty.")
    if expected_dim is not None and len(components) != expected_dim:
        raise DependencyError(
            f"Embedding dimension {len(components)} does not match the configured dimension {expected_dim}.",
            details={"dimension": len(components), "expected": expected_dim},
        )
    return "[" + ",".join(components) + "]"


def decode_vector(literal: str) -> list[float]:
    """Parse a pgvector literal back into floats.

    Raises:
        ValidationError: If the text is not a bracketed, comma-separated list of finite numbers.
    """
    text = literal.strip()
    if not (text.startswith("[") and text.endswith("]")):
        raise ValidationError(f"Not a vector literal: '{literal[:40]}'")
    body = text[1:-1].strip()
    if not body:
        return []
    try:
        values = [float(part) for part in body.split(",")]
    except ValueError:
        raise ValidationError(f"Not a vector literal: '{literal[:40]}'")
    if not all(math.isfinite(v) for v in values):
        raise ValidationError("Vector literal contains non-finite values.")
    return values
