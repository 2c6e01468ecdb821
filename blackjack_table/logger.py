"""Логирование движка блэкджека.

Модули пишут в логгеры ``blackjack_table.*``. ``setup_logging`` настраивает
только логгер пакета, корневой логгер приложения остаётся нетронутым.
"""

import logging
import logging.handlers
import pathlib
import sys
from typing import Optional

from blackjack_table.config import Settings, settings as default_settings

PACKAGE_LOGGER = "blackjack_table"

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s [%(module_name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ModuleNameFilter(logging.Filter):
    """Короткое имя модуля: ``blackjack_table.services.blackjack`` -> ``blackjack``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.module_name = record.name.rsplit(".", 1)[-1]
        return True


def _rotating(path: pathlib.Path, level: int, max_bytes: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    return handler


def reset_logging() -> None:
    """Снять и закрыть обработчики, повешенные ``setup_logging``."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True


def setup_logging(config: Optional[Settings] = None, console: bool = True) -> logging.Logger:
    """Направить логи пакета в ``<log_dir>/blackjack.log`` и ``errors.log``.

    Повторный вызов заменяет прежние обработчики, поэтому уровень и каталог
    можно поменять на ходу.

    Args:
        config: Настройки; по умолчанию глобальные ``settings``.
        console: Дублировать записи в stderr.

    Returns:
        Логгер пакета.
    """
    config = config or default_settings
    log_dir = pathlib.Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    level = getattr(logging, config.log_level, logging.INFO)

    reset_logging()
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    # Свои обработчики, без дублей в корневом логгере
    package_logger.propagate = False

    handlers = [
        _rotating(log_dir / "blackjack.log", level, 10 * 1024 * 1024, 5),
        _rotating(log_dir / "errors.log", logging.ERROR, 5 * 1024 * 1024, 10),
    ]
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(level)
        handlers.append(stream)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    module_filter = ModuleNameFilter()
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(module_filter)
        package_logger.addHandler(handler)

    package_logger.info(f"Logging to {log_dir.absolute()} at {config.log_level}")
    return package_logger
