"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    AlbumModel,
    Base,
    CommentModel,
    PostModel,
    RatingModel,
    RefreshTokenModel,
    RushmoreSlotModel,
    SimlrEdgeModel,
    SimlrReasonModel,
    UserModel,
    VoteModel,
)
from .repositories import (
    AlbumRepository,
    CommentRepository,
    PostRepository,
    RatingRepository,
    RefreshTokenRepository,
    RushmoreRepository,
    SimlrRepository,
    UserRepository,
    VoteRepository,
)

__all__ = [
    "AlbumModel",
    "AlbumRepository",
    "Base",
    "CommentModel",
    "CommentRepository",
    "Database",
    "PostModel",
    "PostRepository",
    "RatingModel",
    "RatingRepository",
    "RefreshTokenModel",
    "RefreshTokenRepository",
    "RushmoreRepository",
    "RushmoreSlotModel",
    "SimlrEdgeModel",
    "SimlrReasonModel",
    "SimlrRepository",
    "UserModel",
    "UserRepository",
    "VoteModel",
    "VoteRepository",
]
