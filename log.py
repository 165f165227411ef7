import logging
import sys
from middleware import RequestIDMiddleware

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(request_id)s] - %(name)s - %(message)s"

# Libraries that log every statement / heartbeat at INFO
NOISY_LOGGERS = ("sqlalchemy.engine", "celery.worker.strategy", "uvicorn.access")


class ContextualFilter(logging.Filter):
    """Stamps each record with the id of the HTTP request being served ("N/A" outside a request)."""
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = RequestIDMiddleware.request_id_context().get()
        return True


def setup_logging(log_level: str = "INFO", log_filename: str | None = "flow_experiments.log"):
    level = log_level.upper()
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_filename:
        handlers.append(logging.FileHandler(log_filename, mode="a"))

    log_filter = ContextualFilter()
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.addFilter(log_filter)
        handler.setFormatter(formatter)

    logging.basicConfig(level=logging.getLevelName(level), handlers=handlers)

    if level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
