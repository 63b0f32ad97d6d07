# backend/config.py
from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_aklat.db"

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Checkout pricing and limits
    SHIPPING_FEE: Decimal = Decimal("20.00")
    DELIVERY_FEE: Decimal = Decimal("10.00")
    MAX_LINE_QUANTITY: int = 50

    # Order numbering
    ORDER_NUMBER_PREFIX: str = "AKLAT"
    ORDER_NUMBER_MAX_ATTEMPTS: int = 5

    # Cart writes that lose a race with another request on the same cart
    CART_WRITE_MAX_ATTEMPTS: int = 3

    class Config:
        env_file: ClassVar[str] = str(env_path)

settings = Settings()
