"""Логирование сервиса: rich в консоль и, по желанию, плоский файл."""

import json
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# библиотеки, которые на INFO пишут по строке на каждый запрос или задачу
NOISY_LOGGERS = ("httpx", "apscheduler.executors.default", "pypdf")

_configured = False


class ErrorEventFormatter(logging.Formatter):
    """Дописывает к строке файла событие ошибки из ``extra={"error_event": ...}``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        event = getattr(record, "error_event", None)
        if event:
            line = f"{line} error_event={json.dumps(event, ensure_ascii=False, default=str)}"
        return line


def configure_logging(level: LogLevel = "INFO") -> None:
    """Настраивает логгер один раз за процесс, дальше меняет только уровень."""
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return
    console = Console(stderr=True)
    # названия товаров приходят из магазина, rich-разметку в них не разбираем
    handlers: list[logging.Handler] = [
        RichHandler(console=console, show_path=False, markup=False)
    ]
    file_handler = _build_file_handler(console)
    if file_handler:
        handlers.append(file_handler)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def _build_file_handler(console: Console) -> logging.Handler | None:
    log_path_str = os.getenv("LOG_FILE_PATH")
    if not log_path_str:
        return None
    log_path = Path(log_path_str).expanduser()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:  # pragma: no cover
        console.print(f"Не удалось открыть файл лога '{log_path}': {exc}", markup=False)
        return None
    handler.setFormatter(
        ErrorEventFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler
