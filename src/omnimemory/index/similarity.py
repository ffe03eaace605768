"""Similarity, recency and diversity primitives."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Sequence

import numpy as np

from omnimemory.utils import as_utc, utcnow

_SECONDS_PER_DAY = 60.0 * 60.0 * 24.0


def as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.float64).reshape(-1)


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalize each row; zero rows stay zero."""
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return matrix / norms


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine similarity, 0.0 for empty, zero or mismatched vectors."""
    va = as_vector(a)
    vb = as_vector(b)
    if va.size == 0 or va.shape != vb.shape:
        return 0.0
    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def recency_decay(
    timestamp: datetime | None,
    half_life_days: float = 30.0,
    now: datetime | None = None,
) -> float | None:
    """exp(-ln2 * age_days / half_life); None when there is no timestamp."""
    if timestamp is None:
        return None
    reference = as_utc(now) if now is not None else utcnow()
    age_days = max(0.0, (reference - as_utc(timestamp)).total_seconds() / _SECONDS_PER_DAY)
    half_life = max(1.0, float(half_life_days))
    return math.exp(-math.log(2.0) * age_days / half_life)


def blend(similarity: float, decay: float | None, similarity_weight: float) -> float:
    """Weighted similarity/recency mix; similarity alone when decay is unknown."""
    if decay is None:
        return similarity
    return similarity_weight * similarity + (1.0 - similarity_weight) * decay


def mmr_select(
    candidates: np.ndarray,
    query: np.ndarray,
    k: int,
    lambda_: float = 0.7,
) -> list[int]:
    """Maximal Marginal Relevance over candidate rows.

    Greedily picks the row maximizing
    ``lambda * sim(row, query) - (1 - lambda) * max(sim(row, selected))``
    until ``k`` rows are chosen or none remain. Returns row positions in
    selection order. Ties keep the earlier candidate.
    """
    if candidates.size == 0 or k <= 0:
        return []
    unit = normalize_rows(np.atleast_2d(np.asarray(candidates, dtype=np.float64)))
    q = as_vector(query)
    q_norm = float(np.linalg.norm(q))
    to_query = unit @ (q / q_norm) if q_norm > 0.0 else np.zeros(unit.shape[0])
    pairwise = unit @ unit.T

    remaining = list(range(unit.shape[0]))
    selected: list[int] = []
    while remaining and len(selected) < k:
        best_pos = 0
        best_score = -math.inf
        for pos, row in enumerate(remaining):
            redundancy = float(pairwise[row, selected].max()) if selected else 0.0
            score = lambda_ * float(to_query[row]) - (1.0 - lambda_) * redundancy
            if score > best_score:
                best_score = score
                best_pos = pos
        selected.append(remaining.pop(best_pos))
    return selected
