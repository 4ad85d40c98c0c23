import pytest

from pumpkinctl.core.color import hex_to_rgb
from pumpkinctl.core.errors import InputValidationError


def test_full_hex_with_hash() -> None:
    assert hex_to_rgb("#FF6600") == (255, 102, 0)


def test_short_hex_and_no_hash() -> None:
    assert hex_to_rgb("f60") == (255, 102, 0)


@pytest.mark.parametrize("value", ["", "#12345", "#GG0000", "orange", "#FF660000"])
def test_invalid_colors_rejected(value: str) -> None:
    with pytest.raises(InputValidationError):
        hex_to_rgb(value)
