import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()  # переменные из .env

DEFAULT_API_VERSION = "2025-01"


def get_shopify_api_secret() -> str:
    # пустая строка = секрет не задан, все подписи отклоняются
    return os.getenv("SHOPIFY_API_SECRET", "").strip()


def get_shopify_admin_token() -> str:
    return (
        os.getenv("SHOPIFY_ADMIN_ACCESS_TOKEN", "").strip()
        or os.getenv("SHOPIFY_ACCESS_TOKEN", "").strip()
    )


def get_shopify_api_version() -> str:
    return os.getenv("SHOPIFY_API_VERSION", DEFAULT_API_VERSION).strip() or DEFAULT_API_VERSION


def get_log_level() -> str:
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    # неизвестный уровень -> INFO, иначе basicConfig падает при импорте
    if not isinstance(logging.getLevelName(level), int):
        return "INFO"
    return level


@dataclass(frozen=True)
class Settings:
    """Настройки процесса. Загружаются один раз при старте и не меняются."""

    api_secret: str = ""
    admin_token: str = ""
    api_version: str = DEFAULT_API_VERSION

    @property
    def has_secret(self) -> bool:
        return bool(self.api_secret)

    def __repr__(self) -> str:
        # секрет и токен в логи не попадают
        return (
            f"Settings(api_secret={'SET' if self.api_secret else 'NOT SET'}, "
            f"admin_token={'SET' if self.admin_token else 'NOT SET'}, "
            f"api_version={self.api_version!r})"
        )


def load_settings() -> Settings:
    return Settings(
        api_secret=get_shopify_api_secret(),
        admin_token=get_shopify_admin_token(),
        api_version=get_shopify_api_version(),
    )
