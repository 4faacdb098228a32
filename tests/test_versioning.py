"""
Tests for version ordering (rgupdate/versioning.py).
"""

import pytest

from rgupdate.versioning import (
    VersionNumber,
    parse_version,
    compare_versions,
    sort_versions_desc,
    max_version,
)


class TestParseVersion:
    """Tests for parse_version."""

    def test_parse_single_component(self):
        """Test a bare major version pads with zeros."""
        v = parse_version("1")
        assert v.key == (1, 0, 0, 0)

    def test_parse_two_components(self):
        """Test major.minor parsing."""
        assert parse_version("1.2").key == (1, 2, 0, 0)

    def test_parse_four_components(self):
        """Test full four-component version."""
        v = parse_version("2.1.10.8038")
        assert (v.major, v.minor, v.patch, v.build) == (2, 1, 10, 8038)

    def test_parse_invalid_string(self):
        """Test non-numeric input normalizes to zeros without raising."""
        assert parse_version("invalid").key == (0, 0, 0, 0)
        assert parse_version("a.b.c").key == (0, 0, 0, 0)
        assert parse_version("1.²").key == (1, 0, 0, 0)
        assert parse_version("2.①.3").key == (2, 0, 3, 0)

    def test_parse_empty_and_none(self):
        """Test empty and None inputs."""
        assert parse_version("").key == (0, 0, 0, 0)
        assert parse_version(None).key == (0, 0, 0, 0)

    def test_parse_mixed_components(self):
        """Test that only the bad component becomes zero."""
        assert parse_version("3.x.5").key == (3, 0, 5, 0)

    def test_parse_ignores_extra_components(self):
        """Test that components past the fourth are ignored."""
        assert parse_version("1.2.3.4.5").key == (1, 2, 3, 4)

    def test_original_string_preserved(self):
        """Test that the original text is kept for display."""
        v = parse_version("a.b.c")
        assert v.original == "a.b.c"
        assert str(parse_version("1.2")) == "1.2"

    def test_version_immutable(self):
        """Test that VersionNumber is immutable."""
        v = parse_version("1.0.0")
        with pytest.raises(AttributeError):
            v.major = 2  # Should fail (frozen)


class TestOrdering:
    """Tests for comparison and sorting."""

    def test_build_component_ordering(self):
        """Test that the build number breaks ties."""
        assert parse_version("2.1.10.8038") > parse_version("2.1.10.8037")
        assert compare_versions("2.1.10.8038", "2.1.10.8037") == 1

    def test_numeric_not_lexicographic(self):
        """Test that components compare numerically."""
        assert compare_versions("10.0.0", "9.9.9") == 1
        assert compare_versions("1.10", "1.9") == 1

    def test_padding_equality(self):
        """Test that '1.2' orders equal to '1.2.0.0' despite different text."""
        assert parse_version("1.2") == parse_version("1.2.0.0")
        assert compare_versions("1.2", "1.2.0.0") == 0

    def test_major_outranks_rest(self):
        """Test '1' > '0.9.9.9'."""
        assert compare_versions("1", "0.9.9.9") == 1
        assert compare_versions("0.9.9.9", "1") == -1

    def test_missing_version_is_lowest(self):
        """Test that a concrete version outranks a missing one."""
        assert compare_versions("0.0.1", None) == 1
        assert compare_versions(None, "0.0.1") == -1
        assert compare_versions(None, None) == 0

    def test_compare_accepts_version_objects(self):
        """Test comparing VersionNumber instances directly."""
        assert compare_versions(VersionNumber(1, 0, 0, 0), parse_version("0.9")) == 1

    def test_sort_desc(self):
        """Test newest-first sorting."""
        versions = ["1.0.0", "10.0.0", "2.5.1", "2.5.10"]
        assert sort_versions_desc(versions) == ["10.0.0", "2.5.10", "2.5.1", "1.0.0"]

    def test_sort_stable_for_equal_versions(self):
        """Test equal versions keep their input order."""
        assert sort_versions_desc(["1.2", "1.2.0.0"]) == ["1.2", "1.2.0.0"]

    def test_max_version(self):
        """Test picking the highest version."""
        assert max_version(["8.1.23", "8.2.0", "8.1.9"]) == "8.2.0"

    def test_max_version_empty(self):
        """Test max_version of nothing."""
        assert max_version([]) is None
