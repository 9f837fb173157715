#!/usr/bin/env python3
"""Event check-in launcher.

    python3 -m venv .venv && . .venv/bin/activate
    pip install -e .
    python main.py check 23ECS015

Configuration comes from `.env` (see `.env.example`):
  APP_SECRET=""        # shared signing secret, same value as the backend
  API_BASE_URL=""      # backend URL; always contacted over https
  CHECKIN_TIMEOUT=15   # seconds per request
"""

import pathlib
import sys

SRC_PATH = pathlib.Path(__file__).resolve().parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from event_checkin.cli import main

if __name__ == "__main__":
    sys.exit(main())
