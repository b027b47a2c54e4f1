"""Tests for path utilities."""

import unicodedata
from pathlib import Path

from takeout_fixer.common.path_utils import normalize_archive_path, normalize_path


class TestNormalizePath:
    """Tests for normalize_path function."""

    def test_forward_slashes(self):
        """Test that backslashes are converted to forward slashes."""
        result = normalize_path(r"Takeout\Google Photos\Trip\image.jpg")
        assert result == "Takeout/Google Photos/Trip/image.jpg"

    def test_unicode_normalization(self):
        """Decomposed (NFD) names compare equal to their composed form."""
        path_nfd = unicodedata.normalize('NFD', "Café/résumé.jpg")
        assert path_nfd != "Café/résumé.jpg"

        assert normalize_path(path_nfd) == "Café/résumé.jpg"

    def test_path_input(self):
        assert normalize_path(Path("photos/2023/image.jpg")) == "photos/2023/image.jpg"

    def test_already_normalized(self):
        """Test that already normalized paths are unchanged."""
        assert normalize_path("photos/2023/image.jpg") == "photos/2023/image.jpg"


class TestNormalizeArchivePath:
    """Tests for normalize_archive_path function."""

    def test_strips_dot_slash(self):
        assert normalize_archive_path("./Takeout/Google Photos/a.jpg") == "Takeout/Google Photos/a.jpg"

    def test_strips_repeated_dot_slash(self):
        assert normalize_archive_path("././Takeout/a.jpg") == "Takeout/a.jpg"

    def test_strips_leading_slash(self):
        assert normalize_archive_path("/Takeout/a.jpg") == "Takeout/a.jpg"

    def test_keeps_dots_inside_names(self):
        assert normalize_archive_path("Takeout/.hidden/a.jpg") == "Takeout/.hidden/a.jpg"
