"""
App settings - storage backend, default business hours, slot step.
"""

import os

DB_PATH = os.environ.get("MENUSLOT_DB_PATH", "menuslot.db")

# "sqlite" or "postgrest"
STORAGE_BACKEND = os.environ.get("MENUSLOT_STORAGE", "sqlite")
SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY")
STORAGE_TIMEOUT = 30

# Used when a date has no business-day row
DEFAULT_OPEN_TIME = "17:00"
DEFAULT_CLOSE_TIME = "21:00"
SLOT_STEP_MINUTES = 30

MENU_NAME_MAX_LENGTH = 50

LOG_LEVEL = os.environ.get("MENUSLOT_LOG_LEVEL", "INFO")
