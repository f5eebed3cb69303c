"""
Tests for input coercion helpers used at every engine entry point.
"""
import math

import pytest

from filmflow.core.exceptions import ValidationError
from filmflow.utils.validation import (
    optional_positive,
    optional_text,
    require_non_negative,
    require_positive,
    require_positive_int,
    require_text,
    round_kg,
    to_number,
)


class TestToNumber:

    def test_numeric_strings_are_accepted(self):
        assert to_number("kg", "12.5") == 12.5
        assert to_number("kg", 3) == 3.0

    @pytest.mark.parametrize("value", [None, "", "abc", True, False, [], math.nan, math.inf])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValidationError) as exc_info:
            to_number("kg", value)
        assert exc_info.value.details.get("field") == "kg"


class TestRanges:

    def test_positive(self):
        assert require_positive("kg", 0.001) == 0.001
        with pytest.raises(ValidationError):
            require_positive("kg", 0)

    def test_non_negative_allows_zero(self):
        assert require_non_negative("kg", 0) == 0.0
        with pytest.raises(ValidationError):
            require_non_negative("kg", -0.1)

    def test_positive_int_rejects_fractions(self):
        assert require_positive_int("cut_quantity", "2") == 2
        with pytest.raises(ValidationError):
            require_positive_int("cut_quantity", 1.5)

    def test_optional_positive_passes_none(self):
        assert optional_positive("target_kg", None) is None
        with pytest.raises(ValidationError):
            optional_positive("target_kg", -5)


class TestText:

    def test_required_text_is_stripped(self):
        assert require_text("bobbin_label", "  C-7 ") == "C-7"

    @pytest.mark.parametrize("value", [None, "", "   ", 12])
    def test_required_text_rejects_blank(self, value):
        with pytest.raises(ValidationError):
            require_text("bobbin_label", value)

    def test_optional_text(self):
        assert optional_text("notes", None) is None
        with pytest.raises(ValidationError):
            optional_text("notes", 5)


def test_round_kg():
    assert round_kg(0.1 + 0.2) == 0.3
    assert round_kg(10.00049) == 10.0
