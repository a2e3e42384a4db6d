import logging
import os
import sys
from pathlib import Path

# Глобальный словарь для отслеживания инициализированных логгеров
_initialized_loggers = set()

LOG_FILE = Path("logs/opn_swap_bot.log")


def _resolve_level() -> int:
    """Уровень из LOG_LEVEL, по умолчанию INFO"""
    level_name = os.getenv('LOG_LEVEL', 'INFO').strip().upper()
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def setup_logger(name: str = None) -> logging.Logger:
    """Настройка системы логирования без дублирования"""
    if name is None:
        name = __name__

    logger = logging.getLogger(name)

    # Если логгер уже инициализирован - возвращаем его
    if name in _initialized_loggers:
        return logger

    logger.setLevel(_resolve_level())

    if not logger.handlers:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        LOG_FILE.parent.mkdir(exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _initialized_loggers.add(name)

    return logger


def short_address(address: str) -> str:
    """0x1234...abcd для логов"""
    if not address or len(address) < 12:
        return address
    return f"{address[:6]}...{address[-4:]}"
