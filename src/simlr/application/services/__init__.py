"""Application services."""

from .album_service import AlbumService
from .auth_service import AuthResult, AuthService
from .discussion_service import CommentView, DiscussionService, PostView
from .profile_service import MyRatingView, ProfileService, RushmoreSlotView
from .ranking import SortOrder, hot_score, sort_ranked
from .rating_service import RatingService, TopAlbum
from .rating_stats import RatingStats, compute_rating_stats
from .seed_service import SeedService
from .simlr_service import SimlrEdgeView, SimlrReasonView, SimlrService
from .vote_service import VoteResult, VoteService

__all__ = [
    "AlbumService",
    "AuthResult",
    "AuthService",
    "CommentView",
    "DiscussionService",
    "MyRatingView",
    "PostView",
    "ProfileService",
    "RatingService",
    "RatingStats",
    "RushmoreSlotView",
    "SeedService",
    "SimlrEdgeView",
    "SimlrReasonView",
    "SimlrService",
    "SortOrder",
    "TopAlbum",
    "VoteResult",
    "VoteService",
    "compute_rating_stats",
    "hot_score",
    "sort_ranked",
]
