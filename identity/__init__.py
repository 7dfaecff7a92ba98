"""
Identity matching for returning clients.

Matches a facial descriptor against enrolled descriptors and signals when
a new identity should be enrolled. Descriptor extraction itself is done by
an external embedding provider.
"""

from .face_matcher import (
    FaceGallery,
    descriptor_distance,
    match_descriptor,
    DEFAULT_MATCH_THRESHOLD,
)

__all__ = [
    'FaceGallery',
    'descriptor_distance',
    'match_descriptor',
    'DEFAULT_MATCH_THRESHOLD',
]
