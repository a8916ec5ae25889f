# backend/rgstore/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping

from flask import current_app


_TRUTHY = {"1", "true", "yes", "on"}


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _env_bool(name: str, default: bool = False) -> bool:
    return _as_bool(os.environ.get(name), default)


def _env_list(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [part.strip() for part in raw.split(",") if part.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/rgstore.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///rgstore.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Unset means the API is open (auth is delegated to an upstream gateway)
    RGSTORE_API_KEY = os.environ.get("RGSTORE_API_KEY") or None
    RGSTORE_CORS_ORIGINS = _env_list(
        "RGSTORE_CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )
    RGSTORE_LOG_LEVEL = os.environ.get("RGSTORE_LOG_LEVEL", "INFO")

    RGSTORE_ALLOW_SHORT_TENDER = _env_bool("RGSTORE_ALLOW_SHORT_TENDER", False)
    RGSTORE_TOP_PRODUCTS = int(os.environ.get("RGSTORE_TOP_PRODUCTS", "5"))
    RGSTORE_MAX_REPORT_DAYS = int(os.environ.get("RGSTORE_MAX_REPORT_DAYS", "366"))
    RGSTORE_SALES_PAGE_SIZE = int(os.environ.get("RGSTORE_SALES_PAGE_SIZE", "50"))
    RGSTORE_DEFAULT_LOW_STOCK_THRESHOLD = int(
        os.environ.get("RGSTORE_DEFAULT_LOW_STOCK_THRESHOLD", "10")
    )


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime settings.

    Built once by create_app() from the final Flask config and handed to
    services as plain arguments. Business logic never reads the environment.
    """
    api_key: str | None
    cors_origins: tuple[str, ...]
    log_level: str
    allow_short_tender: bool
    top_products: int
    max_report_days: int
    sales_page_size: int
    default_low_stock_threshold: int

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "Settings":
        origins = config.get("RGSTORE_CORS_ORIGINS") or ()
        if isinstance(origins, str):
            origins = [o.strip() for o in origins.split(",") if o.strip()]

        settings = cls(
            api_key=config.get("RGSTORE_API_KEY") or None,
            cors_origins=tuple(origins),
            log_level=str(config.get("RGSTORE_LOG_LEVEL", "INFO")).upper(),
            allow_short_tender=_as_bool(config.get("RGSTORE_ALLOW_SHORT_TENDER"), False),
            top_products=int(config.get("RGSTORE_TOP_PRODUCTS", 5)),
            max_report_days=int(config.get("RGSTORE_MAX_REPORT_DAYS", 366)),
            sales_page_size=int(config.get("RGSTORE_SALES_PAGE_SIZE", 50)),
            default_low_stock_threshold=int(config.get("RGSTORE_DEFAULT_LOW_STOCK_THRESHOLD", 10)),
        )

        if settings.top_products < 1:
            raise ValueError("RGSTORE_TOP_PRODUCTS must be >= 1")
        if settings.max_report_days < 1:
            raise ValueError("RGSTORE_MAX_REPORT_DAYS must be >= 1")
        if settings.sales_page_size < 1:
            raise ValueError("RGSTORE_SALES_PAGE_SIZE must be >= 1")
        if settings.default_low_stock_threshold < 0:
            raise ValueError("RGSTORE_DEFAULT_LOW_STOCK_THRESHOLD must be >= 0")
        return settings


def get_settings() -> Settings:
    """Settings of the running app (request or app context required)."""
    return current_app.extensions["rgstore"]
