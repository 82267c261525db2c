import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from .config import get_settings

_HANDLER_MARK = "_rentaldocs_handler"


class JsonFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()

    def format(self, record):
        exclude_attrs = {"args", "asctime", "created", "exc_info", "exc_text", "filename",
                         "id", "levelno", "lineno", "message", "module", "msecs", "funcName", "msg", "pathname",
                         "process", "processName", "relativeCreated", "stack_info", "thread",
                         "threadName", "levelname", "taskName"}

        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "function": record.funcName,
            "message": record.getMessage(),
            "module": record.module,
            "level": record.levelname,
        }

        # Extra fields passed through `extra=` end up as record attributes
        for attr, value in record.__dict__.items():
            if attr not in exclude_attrs:
                log_record[attr] = value

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def setup_logger(name):
    logger = logging.getLogger(name)
    if getattr(logger, _HANDLER_MARK, False):
        return logger

    settings = get_settings()
    logger.setLevel(settings.log_level.upper())

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(JsonFormatter())
    logger.addHandler(stream_handler)

    if settings.log_file:
        rotating_handler = RotatingFileHandler(settings.log_file, maxBytes=2*1024*1024, backupCount=10)
        rotating_handler.setFormatter(JsonFormatter())
        logger.addHandler(rotating_handler)

    setattr(logger, _HANDLER_MARK, True)
    return logger
