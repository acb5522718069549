"""Embedding vector helpers.

Embeddings are persisted as raw float32 bytes and compared with numpy.
``cosine_similarity`` follows the pgvector convention used by the catalog:
``similarity = 1 - cosine_distance``.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def to_blob(vector: Sequence[float] | None) -> bytes | None:
    """Serialise a vector to float32 bytes for a BLOB column."""
    if vector is None:
        return None
    return np.asarray(vector, dtype=np.float32).tobytes()


def from_blob(blob: bytes | None) -> list[float] | None:
    """Inverse of :func:`to_blob`."""
    if blob is None:
        return None
    return np.frombuffer(blob, dtype=np.float32).astype(float).tolist()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows with zero norm score 0.0.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.size == 0:
        return np.zeros(0)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(m, axis=1)
    denom = row_norms * q_norm
    dots = m @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(denom > 0, dots / denom, 0.0)
    return sims
