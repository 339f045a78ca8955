"""
多语言文案测试
"""
from datetime import date
from decimal import Decimal

from gouraan.i18n import translator, TranslationService


def test_translate_english():
    assert translator.translate("booking.status.confirmed", "en") == "Confirmed"


def test_translate_arabic():
    assert translator.translate("booking.status.confirmed", "ar") == "مؤكد"


def test_unknown_locale_falls_back_to_english():
    assert translator.translate("booking.status.pending", "fr") == "Pending"


def test_missing_key_returns_key():
    assert translator.translate("no.such.key", "en") == "no.such.key"


def test_non_leaf_key_returns_key():
    assert translator.translate("booking.status", "en") == "booking.status"


def test_param_substitution():
    title, message = translator.notification_text(
        "booking_confirmed", "en", {"reference": "HT123456ABCD", "points": 450}
    )
    assert title == "Booking confirmed"
    assert "HT123456ABCD" in message
    assert "450" in message


def test_missing_param_left_in_place():
    text = translator.translate("notifications.ticket_closed.message", "en", {})
    assert "{{ticket_id}}" in text


def test_helpers():
    assert translator.translate_booking_type("HAJJ", "en") == "Hajj"
    assert translator.translate_payment_status("paid", "en") == "Paid"


def test_currency_format():
    assert translator.format_currency(Decimal("1234.5"), "SAR", "en") == "SAR 1,234.50"
    assert translator.format_currency(1234.5, "SAR", "ar") == "1,234.50 SAR"


def test_date_format():
    assert translator.format_date(date(2025, 3, 5), "en") == "March 5, 2025"
    assert translator.format_date(date(2025, 3, 5), "ar") == "5 مارس 2025"


def test_locales_and_direction():
    assert set(translator.get_supported_locales()) == {"en", "ar", "bn"}
    assert translator.get_text_direction("ar") == "rtl"
    assert translator.get_text_direction("bn") == "ltr"
    assert translator.resolve_locale(None) == "en"
    assert translator.resolve_locale("bn") == "bn"


def test_empty_directory(tmp_path):
    service = TranslationService(tmp_path)
    assert service.translate("booking.status.confirmed", "en") == "booking.status.confirmed"
    assert service.get_stats() == {}
