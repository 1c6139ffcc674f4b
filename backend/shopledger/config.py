# backend/shopledger/config.py
from __future__ import annotations
import os
from decimal import Decimal


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Applied to quotation subtotals when apply_tax is requested
    QUOTATION_TAX_RATE = Decimal(os.environ.get("QUOTATION_TAX_RATE", "0.16"))

    # quantity <= min_stock_level * ratio is reported as "critical"
    LOW_STOCK_CRITICAL_RATIO = Decimal(os.environ.get("LOW_STOCK_CRITICAL_RATIO", "0.5"))

    LEDGER_PAGE_LIMIT = int(os.environ.get("LEDGER_PAGE_LIMIT", "200"))
