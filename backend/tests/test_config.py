import pytest

from rgstore import create_app
from rgstore.config import Config, Settings, get_settings


def _mapping(**overrides):
    base = {key: getattr(Config, key) for key in dir(Config) if key.isupper()}
    base.update(overrides)
    return base


def test_defaults():
    settings = Settings.from_mapping(_mapping(RGSTORE_API_KEY=None))

    assert settings.api_key is None
    assert settings.allow_short_tender is False
    assert settings.top_products == 5
    assert settings.max_report_days == 366
    assert settings.default_low_stock_threshold == 10


def test_cors_origins_from_string():
    settings = Settings.from_mapping(_mapping(RGSTORE_CORS_ORIGINS="http://a, http://b ,"))
    assert settings.cors_origins == ("http://a", "http://b")


def test_log_level_is_normalized():
    assert Settings.from_mapping(_mapping(RGSTORE_LOG_LEVEL="debug")).log_level == "DEBUG"


@pytest.mark.parametrize("key, value", [
    ("RGSTORE_TOP_PRODUCTS", 0),
    ("RGSTORE_MAX_REPORT_DAYS", 0),
    ("RGSTORE_SALES_PAGE_SIZE", 0),
    ("RGSTORE_DEFAULT_LOW_STOCK_THRESHOLD", -1),
])
def test_invalid_values_fail_fast(key, value):
    with pytest.raises(ValueError):
        Settings.from_mapping(_mapping(**{key: value}))


def test_settings_are_frozen():
    settings = Settings.from_mapping(_mapping())
    with pytest.raises(AttributeError):
        settings.top_products = 10


def test_create_app_applies_overrides():
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "RGSTORE_API_KEY": "k",
        "RGSTORE_TOP_PRODUCTS": 3,
        "RGSTORE_ALLOW_SHORT_TENDER": True,
    })

    with app.app_context():
        settings = get_settings()
        assert settings.api_key == "k"
        assert settings.top_products == 3
        assert settings.allow_short_tender is True


@pytest.mark.parametrize("raw, expected", [
    ("false", False), ("0", False), ("", False), ("no", False),
    ("true", True), ("1", True), (" Yes ", True), (True, True), (False, False), (None, False),
])
def test_short_tender_flag_parses_strings(raw, expected):
    settings = Settings.from_mapping(_mapping(RGSTORE_ALLOW_SHORT_TENDER=raw))
    assert settings.allow_short_tender is expected
