# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET (payment verification)
    """

    PROJECT_NAME: str = "Aurum Jewels API"
    API_V1_STR: str = "/api/v1"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Payment gateway (Razorpay). The key secret signs payment callbacks.
    RAZORPAY_KEY_ID: str | None = None
    RAZORPAY_KEY_SECRET: str | None = None
    GATEWAY_ORDER_FUNCTION: str = "create-razorpay-order"
    CURRENCY: str = "INR"

    # Edge functions the storefront client calls during checkout
    CREATE_ORDER_FUNCTION: str = "create-order"
    VERIFY_PAYMENT_FUNCTION: str = "verify-payment"

    # Pricing
    GST_RATE: float = 0.03
    DEFAULT_RATE_22KT: float = 5000
    DEFAULT_RATE_18KT: float = 4090

    # Cart
    CART_MAX_QUANTITY: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
