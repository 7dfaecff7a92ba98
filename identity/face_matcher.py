"""
Face descriptor matching and enrollment.

Identifies a returning client from a facial embedding (typically the
128-dim face-api.js descriptor) by nearest-neighbor search over enrolled
descriptors.

Engineering decisions:
- Euclidean distance, match if the best distance is below the threshold
  (0.6 by default, the usual operating point for 128-dim face embeddings)
- Linear scan in gallery order, O(n·d); ties resolve to the first entry
- Descriptors of a different length than the query never match
- Multi-snapshot enrollment: an identity may own several descriptors, no
  deduplication
- Each match observes one consistent gallery snapshot, so concurrent
  match/enroll calls never see a half-updated gallery
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from core.data_models import GalleryEntry, MatchResult, freeze_descriptor
from utils.config_loader import get_nested_config

logger = logging.getLogger(__name__)

DEFAULT_MATCH_THRESHOLD = 0.6


def _as_vector(values: Any) -> Optional[np.ndarray]:
    """Convert a descriptor to a 1-D float array; None if malformed or empty."""
    if values is None:
        return None
    try:
        vector = np.asarray(values, dtype=float)
    except (TypeError, ValueError):
        return None
    if vector.ndim != 1 or vector.size == 0:
        return None
    return vector


def descriptor_distance(query: Any, descriptor: Any) -> float:
    """
    Euclidean distance between two descriptors.

    Returns:
        Distance, or +inf when either descriptor is malformed/empty, the
        lengths differ, or the result is not a number
    """
    query_vec = _as_vector(query)
    other_vec = _as_vector(descriptor)

    if query_vec is None or other_vec is None:
        return float('inf')
    if query_vec.shape != other_vec.shape:
        return float('inf')

    distance = float(np.sqrt(np.sum((query_vec - other_vec) ** 2)))
    if np.isnan(distance):
        return float('inf')
    return distance


def _no_match(distance: float = float('inf')) -> MatchResult:
    return MatchResult(identity_ref=None, distance=distance, confidence=0.0, is_new=True)


def match_descriptor(
    query: Any,
    gallery: Sequence[GalleryEntry],
    threshold: float = DEFAULT_MATCH_THRESHOLD
) -> MatchResult:
    """
    Find the nearest enrolled descriptor.

    Args:
        query: Face descriptor to identify
        gallery: Enrolled entries, scanned in the given order
        threshold: Maximum (exclusive) distance for a match

    Returns:
        MatchResult. On a match: the entry's identity, its distance and
        confidence 1 - distance. Otherwise is_new=True with the best
        distance seen (inf if none was comparable).
    """
    query_vec = _as_vector(query)
    if query_vec is None:
        logger.debug("Empty or malformed query descriptor; reporting new identity")
        return _no_match()

    best_entry = None
    best_distance = float('inf')
    skipped = 0

    for entry in gallery:
        distance = descriptor_distance(query_vec, entry.descriptor)
        if distance == float('inf'):
            skipped += 1
            continue
        # Strict comparison keeps the first entry on ties
        if distance < best_distance:
            best_distance = distance
            best_entry = entry

    if skipped:
        logger.debug(f"Skipped {skipped} gallery entries with incompatible descriptors")

    if best_entry is not None and best_distance < threshold:
        return MatchResult(
            identity_ref=best_entry.identity_ref,
            distance=best_distance,
            confidence=1.0 - best_distance,
            is_new=False
        )

    return _no_match(best_distance)


class FaceGallery:
    """
    In-memory gallery of enrolled face descriptors.

    Holds the snapshot supplied by the external identity store and accepts
    new enrollments. Thread-safe: enrollment appends under a lock and each
    match runs on an immutable snapshot.

    Usage:
        gallery = FaceGallery(config=config)
        gallery.enroll(descriptor, 'client-42', {'snapshot': 'img-1'})
        result = gallery.match(query_descriptor)
    """

    def __init__(
        self,
        entries: Optional[Iterable[GalleryEntry]] = None,
        config: Optional[Dict] = None,
        match_threshold: Optional[float] = None
    ):
        """
        Initialize gallery.

        Args:
            entries: Pre-enrolled entries from the identity store, in order
            config: Configuration dict; reads 'identity.match_threshold'
            match_threshold: Explicit threshold, overrides config
        """
        if match_threshold is None:
            match_threshold = get_nested_config(
                config, 'identity.match_threshold', DEFAULT_MATCH_THRESHOLD)
        self.match_threshold = float(match_threshold)

        self._lock = threading.Lock()
        self._entries: Tuple[GalleryEntry, ...] = tuple(entries or ())

        logger.info(
            f"Face gallery initialized: {len(self._entries)} entries, "
            f"threshold={self.match_threshold}"
        )

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> Tuple[GalleryEntry, ...]:
        """Consistent, immutable view of the current entries."""
        with self._lock:
            return self._entries

    def enroll(
        self,
        descriptor: Any,
        identity_ref: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> GalleryEntry:
        """
        Append a descriptor for an identity (no deduplication).

        Args:
            descriptor: Face descriptor to enroll
            identity_ref: Identity the descriptor belongs to
            metadata: Opaque data kept with the entry (e.g. snapshot ref)

        Returns:
            The new GalleryEntry
        """
        entry = GalleryEntry(
            descriptor=freeze_descriptor(descriptor if descriptor is not None else ()),
            identity_ref=identity_ref,
            metadata=dict(metadata or {})
        )

        with self._lock:
            self._entries = self._entries + (entry,)
            count = len(self._entries)

        logger.info(f"Enrolled descriptor for {identity_ref} (dim={entry.dimension}, gallery size={count})")
        return entry

    def match(self, query: Any, threshold: Optional[float] = None) -> MatchResult:
        """Match a query against the current snapshot."""
        if threshold is None:
            threshold = self.match_threshold
        return match_descriptor(query, self.snapshot(), threshold)

    def identities(self) -> List[str]:
        """Distinct identity references in first-enrollment order."""
        seen = []
        for entry in self.snapshot():
            if entry.identity_ref not in seen:
                seen.append(entry.identity_ref)
        return seen
