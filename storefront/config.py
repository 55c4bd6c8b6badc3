# storefront/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    DATABASE_URL: str = "sqlite:///./storefront.db"

    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    CURRENCY: str = "usd"

    # Checkout pricing
    TAX_RATE: float = 0.08
    FREE_SHIPPING_THRESHOLD: float = 100.0
    SHIPPING_COST: float = 10.0

    # Admin dashboard
    LOW_STOCK_THRESHOLD: int = 10

    # When disabled, admins may move an order to any status
    STRICT_ORDER_TRANSITIONS: bool = True

    FRONTEND_URL: str = "http://localhost:5173"

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
