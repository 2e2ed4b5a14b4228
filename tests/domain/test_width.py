"""Tests for responsive width parsing."""

import pytest

from formctl.domain.width import FULL_WIDTH, ResponsiveWidth, parse_responsive_width


class TestParseResponsiveWidth:
    @pytest.mark.parametrize(
        ("width", "expected"),
        [
            (6, ResponsiveWidth(6, 6, 6)),
            ([12, 6], ResponsiveWidth(12, 12, 6)),
            ([12, 6, 4], ResponsiveWidth(12, 6, 4)),
            ([4], ResponsiveWidth(4, 4, 4)),
            ("[12, 6]", ResponsiveWidth(12, 12, 6)),
            ("4", ResponsiveWidth(4, 4, 4)),
        ],
    )
    def test_forms(self, width: object, expected: ResponsiveWidth) -> None:
        assert parse_responsive_width(width) == expected

    @pytest.mark.parametrize("width", [None, "wide", "[", [], ["a"], True, {"x": 1}])
    def test_unreadable_is_full_width(self, width: object) -> None:
        assert parse_responsive_width(width) == FULL_WIDTH

    def test_to_dict(self) -> None:
        assert FULL_WIDTH.to_dict() == {"mobile": 12, "tablet": 12, "desktop": 12}
