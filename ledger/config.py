"""
filename: config.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the application settings, read from the environment.
"""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./ledger.db")
    # Seconds to wait on a locked database or an exhausted connection pool
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "5"))
    timezone: str = os.getenv("TIMEZONE", "Europe/Madrid")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
