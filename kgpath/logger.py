"""Request-scoped log capture."""
from collections import deque
from datetime import datetime, timezone
import logging


class LogEntryFormatter(logging.Formatter):
    """Format records as JSON-able log entries."""

    def format(self, record):
        log_entry = {}

        # If given a string use that as the message
        if isinstance(record.msg, str):
            log_entry["message"] = record.getMessage()

        # If given a dict, just use that as the log entry
        if isinstance(record.msg, dict):
            log_entry |= record.msg

        log_entry["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_entry["level"] = record.levelname

        return log_entry


class QueryLogHandler(logging.Handler):
    """Log Handler."""

    def __init__(self, log_queue):
        logging.Handler.__init__(self)
        self.log_queue = log_queue

    def emit(self, record):
        self.log_queue.append(self.format(record))

    def contents(self):
        """Get stored logs from handler."""
        return self.log_queue


class QueryLogger:
    """Request-specific logger."""

    def __init__(self, name: str, level: str = "INFO", maxlen=None):
        self._log_queue = deque(maxlen=maxlen)
        self._log_handler = QueryLogHandler(self._log_queue)
        self._log_handler.setFormatter(LogEntryFormatter())
        self._logger = logging.getLogger(name)
        self._logger.setLevel(logging.getLevelName(level))
        self._logger.addHandler(self._log_handler)

    @property
    def logger(self):
        return self._logger

    @property
    def log_handler(self):
        return self._log_handler

    def contents(self):
        return list(self._log_handler.contents())

    def close(self):
        """Detach the handler so the named logger can be dropped."""
        self._logger.removeHandler(self._log_handler)
