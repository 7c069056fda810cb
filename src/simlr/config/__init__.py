"""Configuration module for Simlr."""

from .settings import (
    AuthSettings,
    CoverArtSettings,
    DatabaseSettings,
    MusicBrainzSettings,
    RankingSettings,
    Settings,
    SimlrSettings,
    SpotifySettings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "CoverArtSettings",
    "DatabaseSettings",
    "MusicBrainzSettings",
    "RankingSettings",
    "Settings",
    "SimlrSettings",
    "SpotifySettings",
    "get_settings",
]
