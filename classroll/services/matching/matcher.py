"""Greedy best-score-first assignment of detected faces to identities."""
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from classroll.core.logging import get_logger
from classroll.domain.entities.face import DetectedFace
from classroll.domain.entities.identity import Identity
from classroll.domain.value_objects.recognition import Match
from classroll.services.identity_registry import IdentityRegistry
from classroll.services.matching.similarity import (
    COSINE,
    SUPPORTED_METRICS,
    similarity_matrix,
    stack_embeddings,
)

logger = get_logger(__name__)


def validate_threshold(threshold: float) -> float:
    threshold = float(threshold)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Similarity threshold must be within [0, 1], got {threshold}")
    return threshold


def assign_greedy(similarities: np.ndarray, threshold: float) -> List[Tuple[int, int, float]]:
    """Assign rows to columns greedily, strongest similarity first.

    Candidates below ``threshold`` are discarded (the threshold is inclusive).
    The rest are visited by descending similarity, ties broken by row index
    then column index, and a candidate is accepted only if neither its row
    nor its column has been claimed yet.

    Args:
        similarities: (N, M) matrix, rows are faces and columns identities,
            both in their input order
        threshold: Minimum accepted similarity

    Returns:
        Accepted (row, column, similarity) triples in acceptance order
    """
    rows, cols = np.nonzero(similarities >= threshold)
    if rows.size == 0:
        return []

    scores = similarities[rows, cols]
    candidates = sorted(
        zip((-scores).tolist(), rows.tolist(), cols.tolist())
    )

    claimed_rows = set()
    claimed_cols = set()
    accepted = []
    for negative_score, row, col in candidates:
        if row in claimed_rows or col in claimed_cols:
            continue
        claimed_rows.add(row)
        claimed_cols.add(col)
        accepted.append((row, col, -negative_score))
    return accepted


class Matcher:
    """Matches the faces of one photo against enrolled identities.

    Naively taking the best identity per face can hand the same identity to
    two faces that both resemble it. The matcher instead resolves all faces
    together: every (face, identity) pair above the threshold competes, the
    strongest evidence claims first, and each face and each identity can be
    claimed at most once.

    Example:
        ```python
        matcher = Matcher(metric="cosine", default_threshold=0.6)
        matches = matcher.match(detected_faces, registry)
        present = {m.identity_id for m in matches if m.matched}
        ```
    """

    def __init__(
        self,
        metric: str = COSINE,
        default_threshold: float = 0.6,
        embedding_dimension: Optional[int] = None,
    ) -> None:
        """Initialize the matcher.

        Args:
            metric: Distance convention of the embeddings ("cosine" or "euclidean")
            default_threshold: Similarity threshold used when ``match`` gets none
            embedding_dimension: Expected embedding length, checked when given
        """
        if metric not in SUPPORTED_METRICS:
            raise ValueError(f"Unsupported distance metric: {metric!r}")
        self.metric = metric
        self.default_threshold = validate_threshold(default_threshold)
        self.embedding_dimension = embedding_dimension

    def match(
        self,
        faces: Sequence[DetectedFace],
        identities: Union[IdentityRegistry, Sequence[Identity]],
        threshold: Optional[float] = None,
    ) -> List[Match]:
        """Assign each detected face to at most one identity.

        Args:
            faces: Faces of one photo, in detection order
            identities: Registry or identity snapshot, in insertion order
            threshold: Minimum similarity (inclusive); defaults to ``default_threshold``

        Returns:
            One Match per input face, in input order

        Raises:
            EmbeddingDimensionError: If embeddings disagree on their dimension
            ValueError: If the threshold lies outside [0, 1]
        """
        threshold = self.default_threshold if threshold is None else validate_threshold(threshold)
        if isinstance(identities, IdentityRegistry):
            identities = identities.snapshot()

        face_positions = [i for i, face in enumerate(faces) if face.embedding is not None]
        candidates = [identity for identity in identities if identity.embedding is not None]

        results = [Match.unmatched(i) for i in range(len(faces))]
        if not face_positions or not candidates:
            logger.debug(
                "Nothing to match",
                faces=len(faces),
                eligible_faces=len(face_positions),
                eligible_identities=len(candidates),
            )
            return results

        similarities = similarity_matrix(
            stack_embeddings([faces[i].embedding for i in face_positions], self.embedding_dimension),
            stack_embeddings([identity.embedding for identity in candidates], self.embedding_dimension),
            self.metric,
        )

        for row, col, score in assign_greedy(similarities, threshold):
            face_index = face_positions[row]
            results[face_index] = Match(
                face_index=face_index,
                identity_id=candidates[col].id,
                similarity=score,
            )

        logger.debug(
            "Matching pass complete",
            faces=len(faces),
            eligible_faces=len(face_positions),
            eligible_identities=len(candidates),
            matched=sum(1 for m in results if m.matched),
            threshold=threshold,
            metric=self.metric,
        )
        return results
