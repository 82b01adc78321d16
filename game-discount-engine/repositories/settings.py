"""
Runtime settings.

Values are read from the environment, after loading a .env file from the
game-discount-engine directory when one exists.

Environment variables:
- CART_STORE_BACKEND: memory | file | supabase (default: file)
- CART_STORE_DIR: directory for the file backend (default: .cart-store)
- CART_STORE_TABLE: Supabase table for the supabase backend (default: cart_storage)
- SUPABASE_URL / SUPABASE_KEY: required only for the supabase backend
- LOG_LEVEL: logging level name (default: INFO)
- GAME_TICK_MS: game clock resolution in milliseconds (default: 100)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

_BACKENDS = {"memory", "file", "supabase"}


@dataclass(frozen=True, slots=True)
class Settings:
    cart_store_backend: str
    cart_store_dir: Path
    cart_store_table: str
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    log_level: str
    game_tick_ms: int


def load_settings() -> Settings:
    backend = os.getenv("CART_STORE_BACKEND", "file").strip().lower()
    if backend not in _BACKENDS:
        raise RuntimeError(
            f"Invalid CART_STORE_BACKEND: {backend!r}. "
            f"Expected one of: {', '.join(sorted(_BACKENDS))}."
        )

    tick_raw = os.getenv("GAME_TICK_MS", "100")
    try:
        tick_ms = int(tick_raw)
    except ValueError:
        raise RuntimeError(f"GAME_TICK_MS must be an integer, got {tick_raw!r}") from None
    if tick_ms <= 0:
        raise RuntimeError("GAME_TICK_MS must be positive")

    return Settings(
        cart_store_backend=backend,
        cart_store_dir=Path(os.getenv("CART_STORE_DIR", ".cart-store")),
        cart_store_table=os.getenv("CART_STORE_TABLE", "cart_storage"),
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        game_tick_ms=tick_ms,
    )


__all__ = ["Settings", "load_settings"]
