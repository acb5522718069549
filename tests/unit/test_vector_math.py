"""Unit tests for src.utils.vector_math."""

from __future__ import annotations

import numpy as np
import pytest

from src.utils.vector_math import cosine_similarities, cosine_similarity, from_blob, to_blob


class TestBlobs:
    def test_float32_round_trip(self) -> None:
        assert from_blob(to_blob([1.0, -0.5, 0.25])) == [1.0, -0.5, 0.25]

    def test_none_passes_through(self) -> None:
        assert to_blob(None) is None
        assert from_blob(None) is None

    def test_four_bytes_per_component(self) -> None:
        assert len(to_blob([0.0] * 8)) == 32


class TestCosine:
    def test_parallel_and_orthogonal(self) -> None:
        assert cosine_similarity([1.0, 0.0], [3.0, 0.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_vector(self) -> None:
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_matrix_form(self) -> None:
        matrix = np.array([[1.0, 0.0], [0.8, 0.6], [0.0, 0.0]])
        sims = cosine_similarities([1.0, 0.0], matrix)

        assert sims.tolist() == pytest.approx([1.0, 0.8, 0.0])

    def test_empty_matrix(self) -> None:
        assert cosine_similarities([1.0], np.zeros((0, 1))).size == 0
