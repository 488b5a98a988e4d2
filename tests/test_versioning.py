"""Tests for version label parsing and increment."""
import pytest

from app.archreview.errors import InvalidArgument
from app.archreview.modules.solution_review.versioning import (
    DEFAULT_VERSION,
    MAX_COMPONENT,
    VersionLabel,
    compare_versions,
    increment_patch,
    is_valid_version,
    parse_version,
)


def test_no_prior_version_gives_default():
    assert increment_patch(None) == DEFAULT_VERSION == "v1.0.0"


@pytest.mark.parametrize(
    "label,expected",
    [
        ("v1.0.0", "v1.0.1"),
        ("1.2.3", "v1.2.4"),
        ("v0.0.9", "v0.0.10"),
        ("v3.7.41", "v3.7.42"),
    ],
)
def test_increment_patch(label, expected):
    assert increment_patch(label) == expected


@pytest.mark.parametrize("label", ["", "1.2", "v1.2.3.4", "va.b.c", "V1.2.3", "v1.2.3-rc1", "v１.2.3"])
def test_increment_rejects_invalid(label):
    with pytest.raises(InvalidArgument):
        increment_patch(label)


def test_increment_patch_overflow():
    with pytest.raises(InvalidArgument, match="overflow"):
        increment_patch(f"v1.0.{MAX_COMPONENT}")
    assert increment_patch(f"v1.0.{MAX_COMPONENT - 1}") == f"v1.0.{MAX_COMPONENT}"


def test_component_out_of_range_is_invalid():
    assert not is_valid_version(f"v{MAX_COMPONENT + 1}.0.0")
    with pytest.raises(InvalidArgument, match="out of range"):
        parse_version(f"v{MAX_COMPONENT + 1}.0.0")


def test_parse_version():
    assert parse_version("v2.10.3") == VersionLabel(2, 10, 3)
    assert parse_version("2.10.3") == VersionLabel(2, 10, 3)
    assert str(VersionLabel(2, 10, 3)) == "v2.10.3"


def test_parse_rejects_empty():
    with pytest.raises(InvalidArgument, match="null or empty"):
        parse_version(None)


class TestCompare:
    def test_numeric_not_lexical(self):
        assert compare_versions("v1.0.10", "v1.0.9") == 1
        assert compare_versions("v1.10.0", "v1.9.99") == 1

    def test_prefix_does_not_matter(self):
        assert compare_versions("1.2.3", "v1.2.3") == 0

    def test_major_dominates(self):
        assert compare_versions("v1.99.99", "v2.0.0") == -1

    @pytest.mark.parametrize("label", ["v1.0.0", "v1.0.41", "0.3.7"])
    def test_increment_is_strictly_greater(self, label):
        assert compare_versions(label, increment_patch(label)) < 0

    def test_invalid_input_raises(self):
        with pytest.raises(InvalidArgument):
            compare_versions("v1.0.0", "latest")
