# backend/marketcycle/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # DATABASE_URL overrides the local SQLite file under backend/instance/
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///marketcycle.sqlite3")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Window used by the "last N cycles" period of the expired products report
    REPORT_DEFAULT_MONTHS = int(os.environ.get("REPORT_DEFAULT_MONTHS", "3"))
