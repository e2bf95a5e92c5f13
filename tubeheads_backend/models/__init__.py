"""
Domain models shared across services, the API and scripts.
"""

from tubeheads_backend.models.decoding import decode_document, decode_documents
from tubeheads_backend.models.memberships import ListLike, ShowList, WatchedShow, WatchlistEntry
from tubeheads_backend.models.reviews import LikeState, Review
from tubeheads_backend.models.shows import RatingSummary, Show, ShowMetadata

__all__ = [
    "LikeState",
    "ListLike",
    "RatingSummary",
    "Review",
    "Show",
    "ShowList",
    "ShowMetadata",
    "WatchedShow",
    "WatchlistEntry",
    "decode_document",
    "decode_documents",
]
