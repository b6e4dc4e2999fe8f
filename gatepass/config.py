# gatepass/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./gatepass.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Validity windows (hours from creation) ────────────────────────────
    VISITOR_VALIDITY_HOURS: int = 4
    VEHICLE_OUTBOUND_VALIDITY_HOURS: int = 24
    VEHICLE_INBOUND_VALIDITY_HOURS: int = 2

    # ── Expiry reminders ──────────────────────────────────────────────────
    EXPIRY_REMINDER_HOURS: int = 24
    EXPIRY_CRITICAL_HOURS: int = 1

    # ── Gate entry policy ─────────────────────────────────────────────────
    BLOCK_EXPIRED_ENTRY: bool = False   # True = refuse entry once valid_to has passed
    BLOCK_EARLY_ENTRY: bool = False     # True = refuse entry before valid_from

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    AUDIT_LOG_FILE: str = "gate_audit.log"   # Committed pass changes, one line each
    AUDIT_LOG_BACKUPS: int = 30

    @property
    def VALIDITY_HOURS(self) -> dict:
        return {
            "visitor": self.VISITOR_VALIDITY_HOURS,
            "vehicle_outbound": self.VEHICLE_OUTBOUND_VALIDITY_HOURS,
            "vehicle_inbound": self.VEHICLE_INBOUND_VALIDITY_HOURS,
        }

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
