import logging
import sys
import os
from logging.handlers import TimedRotatingFileHandler
from pythonjsonlogger import jsonlogger

# Third-party loggers that are too chatty at INFO.
NOISY_LOGGERS = ('discord', 'discord.http', 'discord.gateway', 'aiohttp.access', 'aiosqlite')


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    handler.setLevel(level)
    return handler


def _json_file_handler(log_dir: str) -> logging.Handler:
    os.makedirs(log_dir, exist_ok=True)
    try:
        interval = int(os.getenv('LOG_ROTATION_INTERVAL_DAYS', '1'))
        backup_count = int(os.getenv('LOG_BACKUP_COUNT', '7'))
    except ValueError:
        interval, backup_count = 1, 7

    handler = TimedRotatingFileHandler(
        os.path.join(log_dir, 'stat_summoner.log'),
        when='midnight', interval=interval, backupCount=backup_count, encoding='utf-8'
    )
    # extra={...} context on each record ends up as top-level JSON keys
    handler.setFormatter(jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(name)s %(message)s',
        rename_fields={'asctime': 'timestamp', 'levelname': 'level', 'name': 'logger'},
        json_ensure_ascii=False
    ))
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging():
    """
    Configure the root logger once: readable text on stdout, JSON lines in a daily rotated file.
    Calling it again is a no-op.
    """
    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        return

    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    console_level = getattr(logging, level_name, logging.INFO)

    # handlers do the filtering
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(_console_handler(console_level))
    root_logger.addHandler(_json_file_handler(os.getenv('LOG_DIR', 'logs')))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info("Logging configured (console: text, file: json)", extra={'console_level': level_name})
