import pytest

from leadbot.src.utils.validators import is_valid_email


@pytest.mark.parametrize("value", ["a@b.co", "a@b.com", "first.last+tag@mail.example.org"])
def test_valid_emails(value):
    assert is_valid_email(value) is True


@pytest.mark.parametrize(
    "value",
    [
        "",
        "not-an-email",
        "a@b",
        "a@b.",
        "@b.co",
        "a@.",
        "a b@c.com",
        "a@b c.com",
        "a@@b.co",
        "a@b.co\n",
        " a@b.co",
    ],
)
def test_invalid_emails(value):
    assert is_valid_email(value) is False


def test_non_string_is_rejected():
    assert is_valid_email(None) is False
    assert is_valid_email(42) is False
