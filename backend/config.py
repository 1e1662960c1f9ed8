"""
Configuration and shared helpers
"""

import os
import calendar
from datetime import date, datetime, timezone
from dotenv import load_dotenv
from pathlib import Path

# Load .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Remote procedure backend (PostgREST / Supabase)
SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
SUPABASE_KEY = os.environ.get('SUPABASE_KEY', '')

CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

# Timeouts (seconds)
RPC_TIMEOUT_SECONDS = float(os.environ.get('RPC_TIMEOUT_SECONDS', '30'))
DASHBOARD_TIMEOUT_SECONDS = float(os.environ.get('DASHBOARD_TIMEOUT_SECONDS', '10'))

# Cache freshness window: 5 minutes
CACHE_DURATION_SECONDS = int(os.environ.get('CACHE_DURATION_SECONDS', '300'))
CACHE_DURATION_MS = CACHE_DURATION_SECONDS * 1000

# Row limit for the "today's reminders" listing used by the dashboard
TODAY_REMINDERS_LIMIT = 1000

# Session stores kept in memory (one per caller identity)
STORE_REGISTRY_MAX_SIZE = int(os.environ.get('STORE_REGISTRY_MAX_SIZE', '500'))
STORE_IDLE_SECONDS = int(os.environ.get('STORE_IDLE_SECONDS', '1800'))


# ==================== HELPERS ====================

def now_ms() -> int:
    """Current epoch time in milliseconds"""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the calendar month containing `day`"""
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)
