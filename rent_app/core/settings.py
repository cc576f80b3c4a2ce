import os
from decimal import Decimal
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

from .url_parser import parser

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "RENTAL PROPERTY MANAGEMENT - RENT ENGINE"
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./rent_app.db")
    DB_ECHO: bool = False
    CREATE_TABLES_ON_STARTUP: bool = False
    ALLOWED_HOSTS_RAW: str = os.getenv("ALLOWED_HOSTS", "")

    LATE_FEE_GRACE_DAYS: int = 5
    WEEKLY_LATE_FEE: Decimal = Decimal("10")
    BIWEEKLY_LATE_FEE: Decimal = Decimal("20")
    MONTHLY_LATE_FEE: Decimal = Decimal("45")
    MONTHLY_INTERVAL_DAYS: int = 30

    SEVERE_BALANCE: Decimal = Decimal("5000")
    HIGH_BALANCE: Decimal = Decimal("2000")
    MODERATE_BALANCE: Decimal = Decimal("500")

    @property
    def ALLOWED_HOSTS(self) -> List[str]:
        return parser.parse_url_list(self.ALLOWED_HOSTS_RAW, "ALLOWED_HOSTS")

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


settings = Settings()
