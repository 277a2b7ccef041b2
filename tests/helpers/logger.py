"""Logging setup."""
import logging


class ColoredFormatter(logging.Formatter):
    """Colored formatter."""

    prefix = "[%(asctime)s: %(levelname)s/%(name)s]:"
    default = f"{prefix} %(message)s"
    error_fmt = f"\x1b[31m{prefix}\x1b[0m %(message)s"
    warning_fmt = f"\x1b[33m{prefix}\x1b[0m %(message)s"
    info_fmt = f"\x1b[32m{prefix}\x1b[0m %(message)s"
    debug_fmt = f"\x1b[34m{prefix}\x1b[0m %(message)s"

    formats = {
        logging.DEBUG: debug_fmt,
        logging.INFO: info_fmt,
        logging.WARNING: warning_fmt,
        logging.ERROR: error_fmt,
    }

    def format(self, record):
        """Format record."""
        format_orig = self._style._fmt
        self._style._fmt = self.formats.get(record.levelno, self.default)
        result = logging.Formatter.format(self, record)
        self._style._fmt = format_orig
        return result


def setup_logger():
    """Send kgpath logs to the terminal during tests."""
    logger = logging.getLogger("kgpath")
    logger.setLevel(logging.DEBUG)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(ColoredFormatter(ColoredFormatter.default))
        logger.addHandler(handler)
    return logger
