"""
Конфигурация сервиса из переменных окружения (.env).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Загружаем .env из корня backend
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)


def _str(key: str, default: str | None = None) -> str:
    value = os.getenv(key)
    if value is not None:
        return value.strip()
    if default is not None:
        return default
    return ""


def _int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _bool(key: str, default: bool) -> bool:
    raw = os.getenv(key, "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


class Settings:
    """Настройки сервиса."""

    # База данных (postgresql://... будет переведён на asyncpg)
    DATABASE_URL: str = _str("DATABASE_URL", "")
    DB_ECHO: bool = _bool("DB_ECHO", False)

    # Логирование
    LOG_LEVEL: str = _str("LOG_LEVEL", "INFO")
    LOG_DIR: str = _str("LOG_DIR", str(Path(__file__).resolve().parent.parent.parent / "logs"))
    LOG_TO_FILE: bool = _bool("LOG_TO_FILE", True)

    # Идентификаторы организаций рабочего пространства (Clerk) начинаются с этого префикса
    WORKSPACE_ORG_ID_PREFIX: str = _str("WORKSPACE_ORG_ID_PREFIX", "org_")

    # Веб-страницы: категория по умолчанию при первой вставке
    WEB_PAGE_DEFAULT_CATEGORY: str = _str("WEB_PAGE_DEFAULT_CATEGORY", "other")
    # Снимать should_scrape с остальных страниц тех же доменов после загрузки пачки
    WEB_PAGES_DESELECT_SIBLINGS: bool = _bool("WEB_PAGES_DESELECT_SIBLINGS", True)

    # Тезисы: допустимые уровни contrarian_level
    THESIS_MIN_LEVEL: int = _int("THESIS_MIN_LEVEL", 1)
    THESIS_MAX_LEVEL: int = _int("THESIS_MAX_LEVEL", 10)

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL с асинхронным драйвером (postgresql+psycopg -> postgresql+asyncpg)."""
        url = self.DATABASE_URL
        if url.startswith("postgresql+psycopg://"):
            return url.replace("postgresql+psycopg://", "postgresql+asyncpg://")
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://")
        return url


# Глобальный экземпляр конфига (инициализируется при первом обращении)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Возвращает экземпляр настроек (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
