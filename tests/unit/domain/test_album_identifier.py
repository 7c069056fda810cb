"""Tests for album identifier classification."""

import pytest

from simlr.domain.exceptions import AlbumIdentifierNotRecognized, EntityNotFoundException
from simlr.domain.value_objects import (
    LegacyId,
    RegistryId,
    classify_album_identifier,
    is_mbid,
    is_spotify_id,
)


class TestClassifyAlbumIdentifier:
    """Tests for classify_album_identifier()."""

    def test_mbid_is_registry_id(self) -> None:
        """Test that a lowercase MBID classifies as a RegistryId."""
        result = classify_album_identifier("b1392450-e666-3926-a536-22c65f834433")
        assert result == RegistryId("b1392450-e666-3926-a536-22c65f834433")
        assert result.column == "mbid"

    def test_uppercase_mbid_is_normalised(self) -> None:
        """Test that MBIDs are lowercased so both spellings hit the same row."""
        result = classify_album_identifier("B1392450-E666-3926-A536-22C65F834433")
        assert result == RegistryId("b1392450-e666-3926-a536-22c65f834433")

    def test_spotify_id_is_legacy_id(self) -> None:
        """Test that a 22-character alphanumeric ID classifies as a LegacyId."""
        result = classify_album_identifier("6dVIqQ8qmQ5GBnJ9shOYGE")
        assert result == LegacyId("6dVIqQ8qmQ5GBnJ9shOYGE")
        assert result.column == "spotify_album_id"

    def test_spotify_id_keeps_case(self) -> None:
        """Legacy IDs are case-sensitive and must not be lowercased."""
        assert classify_album_identifier("MockInRainbows00000001").value == "MockInRainbows00000001"

    def test_surrounding_whitespace_is_ignored(self) -> None:
        assert isinstance(classify_album_identifier("  MockBlonde000000000001 "), LegacyId)

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "not-an-id",
            "6dVIqQ8qmQ5GBnJ9shOYG",  # 21 chars
            "6dVIqQ8qmQ5GBnJ9shOYGEx",  # 23 chars
            "6dVIqQ8qmQ5GBnJ9shOY-E",
            "b1392450e6663926a53622c65f834433",  # MBID without dashes
            "g1392450-e666-3926-a536-22c65f834433",  # non-hex
        ],
    )
    def test_unrecognized_identifiers_raise(self, raw: str) -> None:
        """Test that anything else raises AlbumIdentifierNotRecognized."""
        with pytest.raises(AlbumIdentifierNotRecognized):
            classify_album_identifier(raw)

    def test_unrecognized_is_a_not_found(self) -> None:
        """Unrecognized identifiers surface as 404s, so they subclass EntityNotFound."""
        with pytest.raises(EntityNotFoundException):
            classify_album_identifier("nope")


class TestPredicates:
    """Tests for is_mbid() and is_spotify_id()."""

    def test_is_mbid(self) -> None:
        assert is_mbid("a3a0b7d5-1fd4-3b43-9a6c-2f3cd31a2dc3")
        assert not is_mbid("MockInRainbows00000001")

    def test_is_spotify_id(self) -> None:
        assert is_spotify_id("MockInRainbows00000001")
        assert not is_spotify_id("a3a0b7d5-1fd4-3b43-9a6c-2f3cd31a2dc3")
