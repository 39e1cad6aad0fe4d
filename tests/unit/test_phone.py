import pytest

from phoneauth.domain.errors import InvalidPhone
from phoneauth.domain.services import mask_phone, normalize_phone


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("+998901234567", "+998901234567"),
        ("998901234567", "+998901234567"),
        (" +998 (90) 123-45-67 ", "+998901234567"),
        ("+1 555 000 1111", "+15550001111"),
    ],
)
def test_normalize_phone_accepts_common_formats(raw, expected):
    assert normalize_phone(raw) == expected


def test_normalize_phone_requires_value():
    with pytest.raises(InvalidPhone, match="required"):
        normalize_phone("   ")


def test_normalize_phone_rejects_letters():
    with pytest.raises(InvalidPhone, match="invalid characters"):
        normalize_phone("+99890abc4567")


@pytest.mark.parametrize("raw", ["+1234567", "+1234567890123456"])
def test_normalize_phone_rejects_bad_lengths(raw):
    with pytest.raises(InvalidPhone, match="E.164"):
        normalize_phone(raw)


def test_mask_phone_keeps_prefix_and_last_digits():
    assert mask_phone("+998901234567") == "+99890*****67"
    assert mask_phone("short") == "*****"
