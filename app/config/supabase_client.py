"""Supabase configuration shared by the identity and document store helpers."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

# Tenant-scoped collections read by the forecasting pipeline.
USERS_TABLE = "users"
INGREDIENTS_TABLE = "ingredients"
STOCK_TRANSACTIONS_TABLE = "stock_transactions"
PURCHASE_ORDERS_TABLE = "purchase_orders"
WASTE_LOG_TABLE = "waste_log"


def supabase_configured() -> bool:
    """Return True when the Supabase URL and at least one key are present."""
    return bool(SUPABASE_URL and (SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY))


__all__ = [
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "USERS_TABLE",
    "INGREDIENTS_TABLE",
    "STOCK_TRANSACTIONS_TABLE",
    "PURCHASE_ORDERS_TABLE",
    "WASTE_LOG_TABLE",
    "supabase_configured",
]
