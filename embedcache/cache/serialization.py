"""
Vector serialization for cache storage.

Vectors are stored as raw little-endian float32 values, dimension * 4 bytes.

Sandi Metz Principles:
- Single Responsibility: Vector <-> bytes conversion
- Pure functions: No side effects
"""

import base64
from typing import List, Sequence

import numpy as np

VECTOR_DTYPE = np.dtype("<f4")


def serialize_vector(vector: Sequence[float]) -> bytes:
    """
    Serialize vector to bytes.

    Args:
        vector: Embedding vector

    Returns:
        Little-endian float32 bytes
    """
    return np.asarray(vector, dtype=VECTOR_DTYPE).tobytes()


def deserialize_vector(data: bytes) -> List[float]:
    """
    Deserialize bytes to vector.

    Args:
        data: Little-endian float32 bytes

    Returns:
        Embedding vector

    Raises:
        ValueError: If data length is not a multiple of 4
    """
    if len(data) % VECTOR_DTYPE.itemsize != 0:
        raise ValueError(f"Invalid vector payload length: {len(data)}")
    return np.frombuffer(data, dtype=VECTOR_DTYPE).tolist()


def to_storage_precision(vector: Sequence[float]) -> List[float]:
    """
    Round vector to the precision it will have once stored.

    Args:
        vector: Embedding vector

    Returns:
        Vector whose values are exactly representable as float32
    """
    return deserialize_vector(serialize_vector(vector))


def encode_vector_b64(vector: Sequence[float]) -> str:
    """Serialize vector to base64 text for portable snapshots."""
    return base64.b64encode(serialize_vector(vector)).decode("ascii")


def decode_vector_b64(data: str) -> List[float]:
    """Deserialize base64 snapshot text to vector."""
    return deserialize_vector(base64.b64decode(data.encode("ascii")))
