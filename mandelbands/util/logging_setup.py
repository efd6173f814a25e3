import logging
import logging.handlers
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

_LOGGER_NAME = "mandelbands"
_NO_BAND = "-"

_context = threading.local()

def get_logger() -> logging.Logger:
    return logging.getLogger(_LOGGER_NAME)

@contextmanager
def band_context(index: int) -> Iterator[None]:
    """Tag every record logged by this thread with the band it is rendering."""
    previous = getattr(_context, "band", _NO_BAND)
    _context.band = index
    try:
        yield
    finally:
        _context.band = previous

class BandContextFilter(logging.Filter):
    """Fills `record.band` from the current thread's band, unless the caller passed one via `extra`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "band"):
            record.band = getattr(_context, "band", _NO_BAND)
        return True

def _build_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s.%(msecs)03dZ %(threadName)s band=%(band)s %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

def configure_root_logging(
    *,
    level: int = logging.INFO,
    console: bool = True,
    log_file: Optional[str] = "render.log",
    rotate_bytes: int = 5 * 1024 * 1024,
    rotate_count: int = 5,
) -> logging.Logger:
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    fmt = _build_formatter()
    handlers = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=rotate_bytes, backupCount=rotate_count, encoding="utf-8"
        ))
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
        h.addFilter(BandContextFilter())
        logger.addHandler(h)
    return logger

def shutdown_logging() -> None:
    logger = get_logger()
    for h in list(logger.handlers):
        h.flush()
        h.close()
        logger.removeHandler(h)
    logger.propagate = True
