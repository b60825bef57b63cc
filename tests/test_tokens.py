import base64

import pytest

from app.core import tokens


def test_issue_returns_well_formed_unique_tokens():
    issued = {tokens.issue("event-1", "alice@acme.io") for _ in range(200)}

    assert len(issued) == 200
    for token in issued:
        assert len(token) == tokens.TOKEN_LENGTH
        assert tokens.validate_format(token)


def test_issue_does_not_derive_from_email():
    assert tokens.issue("event-1", "alice@acme.io") != tokens.issue("event-1", "alice@acme.io")


@pytest.mark.parametrize(
    "value",
    [
        "",
        None,
        12345,
        "a" * 42,
        "a" * 44,
        "a" * 42 + "+",
        "a" * 42 + "=",
        "a" * 42 + "/",
        " " + "a" * 42,
    ],
)
def test_validate_format_rejects_malformed(value):
    assert tokens.validate_format(value) is False


def test_validate_format_accepts_urlsafe_alphabet():
    assert tokens.validate_format("Az09_-" + "x" * 37)


def test_render_returns_png_data_uri():
    token = tokens.issue("event-1", "alice@acme.io")

    data_uri = tokens.render(token)

    assert data_uri.startswith("data:image/png;base64,")
    png = base64.b64decode(data_uri.split(",", 1)[1])
    assert png.startswith(b"\x89PNG")
