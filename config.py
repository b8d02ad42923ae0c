"""
Runtime configuration for the food ordering API and cart client.
Values come from environment variables (optionally via a .env file).
"""

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
# where pyproject data-files puts the menu on a regular (non-editable) install
INSTALLED_DATA_DIR = Path(sys.prefix) / "share" / "food-order-demo"


def default_menu_path() -> Path:
    local = BASE_DIR / "menu.json"
    if local.exists():
        return local
    return INSTALLED_DATA_DIR / "menu.json"


def _get_env(key: str, default: str) -> str:
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip()


class Settings(BaseModel):
    # API server
    database_url: str = "sqlite+aiosqlite:///:memory:"
    menu_path: str = str(default_menu_path())
    cors_origins: List[str] = ["*"]
    rate_limit_per_minute: int = 30
    simulated_latency: float = 0.0
    estimated_delivery: str = "30-45 minutes"
    host: str = "0.0.0.0"
    port: int = 3000

    # Cart client
    cart_path: str = str(Path.home() / ".food_order" / "cart.json")
    api_base_url: str = "http://localhost:3000/api"
    request_timeout: float = 10.0


@lru_cache()
def get_settings() -> Settings:
    defaults = Settings()
    origins = _get_env("CORS_ORIGINS", ",".join(defaults.cors_origins))
    return Settings(
        database_url=_get_env("DATABASE_URL", defaults.database_url),
        menu_path=_get_env("MENU_PATH", defaults.menu_path),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        rate_limit_per_minute=int(_get_env("RATE_LIMIT_PER_MINUTE", str(defaults.rate_limit_per_minute))),
        simulated_latency=float(_get_env("SIMULATED_LATENCY", str(defaults.simulated_latency))),
        estimated_delivery=_get_env("ESTIMATED_DELIVERY", defaults.estimated_delivery),
        host=_get_env("HOST", defaults.host),
        port=int(_get_env("PORT", str(defaults.port))),
        cart_path=_get_env("CART_PATH", defaults.cart_path),
        api_base_url=_get_env("API_BASE_URL", defaults.api_base_url).rstrip("/"),
        request_timeout=float(_get_env("REQUEST_TIMEOUT", str(defaults.request_timeout))),
    )
