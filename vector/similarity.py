# file: vector/similarity.py
from typing import Iterable, List, Optional, Sequence, Tuple
import numpy as np

class DimensionMismatchError(ValueError): ...

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, 0.0 when either has zero norm."""
    if len(a) != len(b):
        raise DimensionMismatchError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / (na * nb), -1.0, 1.0))

def _scored(query, candidates, min_similarity, exclude_ids):
    excluded = set(exclude_ids or ())
    for key, vector in candidates:
        if key in excluded:
            continue
        score = cosine_similarity(query, vector)
        if score >= min_similarity:
            yield key, score

def find_top_match(
    query: Sequence[float],
    candidates: Iterable[Tuple[str, Sequence[float]]],
    min_similarity: float = 0.3,
    exclude_ids: Iterable[str] = (),
) -> Optional[Tuple[str, float]]:
    """Best (key, similarity) at or above the threshold; ties keep the first seen."""
    best: Optional[Tuple[str, float]] = None
    for key, score in _scored(query, candidates, min_similarity, exclude_ids):
        if best is None or score > best[1]:
            best = (key, score)
    return best

def rank_matches(
    query: Sequence[float],
    candidates: Iterable[Tuple[str, Sequence[float]]],
    min_similarity: float = 0.3,
    limit: int = 10,
    exclude_ids: Iterable[str] = (),
) -> List[Tuple[str, float]]:
    rows = list(_scored(query, candidates, min_similarity, exclude_ids))
    # stable sort keeps insertion order among equal scores
    rows.sort(key=lambda r: r[1], reverse=True)
    return rows[:max(limit, 0)]
