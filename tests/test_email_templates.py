from datetime import datetime, timezone
from types import SimpleNamespace

from app.core.email_templates import (
    DEFAULT_QR_INSTRUCTIONS,
    default_email_settings,
    format_event_date,
    needs_qr_image,
    render_qr_email,
    render_reminder_email,
    substitute,
)

QR = "data:image/png;base64,AAAA"
PAGE_URL = "https://checkin.acme.io/qr/token"


def _event(name="R&D Day"):
    return SimpleNamespace(
        name=name, date=datetime(2024, 12, 1, 10, 0, tzinfo=timezone.utc), location="Hall <A>"
    )


def _participant(name="Bob", company=None):
    return SimpleNamespace(name=name, email="bob@acme.io", company=company, qr_token="token")


def _settings(**overrides):
    values = dict.fromkeys(default_email_settings())
    values.update(overrides)
    return SimpleNamespace(**values)


def test_substitute_replaces_known_placeholders_only():
    values = {"{{NAME}}": "Bob", "{{EVENT_NAME}}": "Launch"}

    result = substitute("Hi {{NAME}}, see you at {{EVENT_NAME}} {{UNKNOWN}}", values)

    assert result == "Hi Bob, see you at Launch {{UNKNOWN}}"


def test_substitute_escapes_values_in_html_but_not_in_subject():
    values = {"{{NAME}}": "<b>Bob</b>"}

    assert substitute("{{NAME}}", values) == "&lt;b&gt;Bob&lt;/b&gt;"
    assert substitute("{{NAME}}", values, html=False) == "<b>Bob</b>"


def test_qr_placeholder_becomes_image_only_in_html():
    assert 'src="data:image/png;base64,AAAA"' in substitute("{{QR_CODE}}", {}, qr_data_uri=QR)
    assert substitute("x{{QR_CODE}}x", {}, qr_data_uri=QR, html=False) == "xx"
    assert substitute("x{{QR_CODE}}x", {}) == "xx"


def test_needs_qr_image():
    assert needs_qr_image(None, "<p>{{QR_CODE}}</p>")
    assert not needs_qr_image(None, "<p>{{NAME}}</p>")


def test_format_event_date():
    assert format_event_date(datetime(2024, 12, 1, 10, 0)) == "2024/12/01 10:00"
    assert format_event_date(None) == ""


def test_qr_email_falls_back_to_defaults():
    subject, html = render_qr_email(_settings(), _event(), _participant(), QR, PAGE_URL)

    assert subject == "R&D Day - Check-in QR code"
    assert "<h1>R&amp;D Day</h1>" in html
    assert "Hall &lt;A&gt;" in html
    assert "2024/12/01 10:00" in html
    assert QR in html
    for instruction in DEFAULT_QR_INSTRUCTIONS:
        assert f"<li>{instruction}</li>" in html
    assert PAGE_URL in html


def test_qr_email_appends_qr_section_when_message_has_no_placeholder():
    email_settings = _settings(qr_main_message="<p>Welcome {{NAME}}</p>")

    _, html = render_qr_email(email_settings, _event(), _participant(company="Acme"), QR, PAGE_URL)

    assert "<p>Welcome Bob</p>" in html
    assert 'class="qr-section"' in html
    assert "<div>Acme</div>" in html
    assert html.count(QR) == 1


def test_qr_email_with_empty_instructions_omits_list():
    _, html = render_qr_email(_settings(qr_instructions=[]), _event(), _participant(), QR, PAGE_URL)

    assert "<ul>" not in html


def test_participant_values_are_escaped_in_body():
    email_settings = _settings(qr_greeting="Hello {{NAME}}")

    _, html = render_qr_email(email_settings, _event(), _participant(name="<script>x</script>"), QR, PAGE_URL)

    assert "<script>x</script>" not in html
    assert "Hello &lt;script&gt;x&lt;/script&gt;" in html


def test_reminder_email_uses_custom_subject():
    email_settings = _settings(reminder_subject="Mañana: {{eventName}}")

    subject, html = render_reminder_email(email_settings, _event("Launch"), _participant(), PAGE_URL)

    assert subject == "Mañana: Launch"
    assert "<p>Dear Bob,</p>" in html
    assert "data:image/png" not in html


def test_substituted_values_are_not_expanded_again():
    values = {"{{NAME}}": "{{EVENT_LOCATION}}", "{{EVENT_LOCATION}}": "Hall A"}

    assert substitute("{{NAME}} at {{EVENT_LOCATION}}", values) == "{{EVENT_LOCATION}} at Hall A"
    assert substitute("{{NAME}}", {"{{NAME}}": "{{QR_CODE}}"}, qr_data_uri=QR) == "{{QR_CODE}}"

    email_settings = _settings(qr_subject="{{NAME}} @ {{eventName}}", qr_greeting="Hello {{NAME}}")
    subject, html = render_qr_email(email_settings, _event(), _participant(name="{{EVENT_LOCATION}}"), QR, PAGE_URL)

    assert subject == "{{EVENT_LOCATION}} @ R&D Day"
    assert "<p>Hello {{EVENT_LOCATION}}</p>" in html
