import logging
import sys
from pathlib import Path

from src.core import get_settings

settings = get_settings()

# Директория для логов: из настроек или рядом с модулем
log_dir = Path(settings.LOG_DIR) if settings.LOG_DIR else Path(__file__).parent
log_dir.mkdir(parents=True, exist_ok=True)


def setup_logging(name: str = "api_logger", filename: str = "api_requests.log") -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Повторный импорт не должен дублировать обработчики
    if logger.handlers:
        return logger

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(log_dir / filename, encoding="utf-8")
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


api_logger = setup_logging()
