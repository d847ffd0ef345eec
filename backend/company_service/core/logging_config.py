import logging
import sys
from pathlib import Path

from company_service.core.config import get_settings


def _get_log_level() -> int:
    """Получить уровень логирования из настроек."""
    log_level_str = get_settings().LOG_LEVEL.upper()

    # Преобразуем строку в уровень логирования
    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    return level_mapping.get(log_level_str, logging.INFO)


def setup_logging() -> None:
    """Настройка логирования для сервиса."""
    settings = get_settings()

    # Формат логов
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]  # Консоль
    if settings.LOG_TO_FILE:
        # Создаём директорию для логов, если её нет
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(
                log_dir / "app.log",
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=_get_log_level(),
        format=log_format,
        datefmt=date_format,
        handlers=handlers,
    )

    # Настройка уровней для сторонних библиотек
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)  # Меньше SQL логов
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить logger с указанным именем."""
    return logging.getLogger(name)
