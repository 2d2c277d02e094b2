"""Distance-to-similarity conversions for face embeddings.

Every conversion is monotonic in the underlying distance and bounded to
[0, 1], so a single similarity threshold means the same thing whatever
metric the embedding model was trained for:

- ``cosine``: ``clip(cos(a, b), 0, 1)``, i.e. one minus the cosine distance,
  with opposite-facing vectors floored at zero.
- ``euclidean``: ``clip(1 - ||a - b||, 0, 1)``, the convention of 128-D
  dlib/face-api style descriptors whose same-person distances sit below ~0.6.
"""
from typing import Optional, Sequence

import numpy as np

from classroll.core.exceptions import EmbeddingDimensionError

COSINE = "cosine"
EUCLIDEAN = "euclidean"
SUPPORTED_METRICS = (COSINE, EUCLIDEAN)


def stack_embeddings(embeddings: Sequence[np.ndarray], dimension: Optional[int] = None) -> np.ndarray:
    """Stack 1-D embeddings into a float64 (N, D) matrix.

    Raises:
        EmbeddingDimensionError: If embeddings disagree on their length
    """
    if len(embeddings) == 0:
        return np.zeros((0, dimension or 0), dtype=np.float64)

    lengths = {int(np.asarray(e).size) for e in embeddings}
    if len(lengths) != 1:
        raise EmbeddingDimensionError(
            "Embeddings have inconsistent dimensions",
            details={"dimensions": sorted(lengths)},
        )
    if dimension is not None and dimension not in lengths:
        raise EmbeddingDimensionError(
            f"Expected embeddings of dimension {dimension}",
            details={"dimension": lengths.pop()},
        )
    return np.stack([np.asarray(e, dtype=np.float64).reshape(-1) for e in embeddings], axis=0)


def _l2_normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return matrix / norms


def similarity_matrix(
    face_embeddings: np.ndarray,
    identity_embeddings: np.ndarray,
    metric: str = COSINE,
) -> np.ndarray:
    """Compute pairwise similarities between faces (rows) and identities (columns).

    Args:
        face_embeddings: (N, D) matrix
        identity_embeddings: (M, D) matrix
        metric: One of ``SUPPORTED_METRICS``

    Returns:
        (N, M) float64 matrix of similarities in [0, 1]

    Raises:
        EmbeddingDimensionError: If the two matrices disagree on D
        ValueError: If the metric is unknown
    """
    n_faces, n_identities = face_embeddings.shape[0], identity_embeddings.shape[0]
    if n_faces == 0 or n_identities == 0:
        return np.zeros((n_faces, n_identities), dtype=np.float64)

    if face_embeddings.shape[1] != identity_embeddings.shape[1]:
        raise EmbeddingDimensionError(
            "Face and identity embeddings have different dimensions",
            details={
                "face_dimension": int(face_embeddings.shape[1]),
                "identity_dimension": int(identity_embeddings.shape[1]),
            },
        )

    if metric == COSINE:
        cos = _l2_normalize_rows(face_embeddings) @ _l2_normalize_rows(identity_embeddings).T
        return np.clip(cos, 0.0, 1.0)
    if metric == EUCLIDEAN:
        diff = face_embeddings[:, None, :] - identity_embeddings[None, :, :]
        distances = np.sqrt(np.sum(diff * diff, axis=2))
        return np.clip(1.0 - distances, 0.0, 1.0)

    raise ValueError(f"Unsupported distance metric: {metric!r}")


def similarity(a: np.ndarray, b: np.ndarray, metric: str = COSINE) -> float:
    """Similarity between two single embeddings."""
    matrix = similarity_matrix(stack_embeddings([a]), stack_embeddings([b]), metric)
    return float(matrix[0, 0])
