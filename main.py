"""
Menu Reservations
=================
Reserve one menu per day and an arrival time within business hours.

Run with:  streamlit run main.py
"""

import logging

from menuslot_app.config import LOG_LEVEL
from menuslot_app.ui_streamlit import main

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

if __name__ == "__main__":
    main()
