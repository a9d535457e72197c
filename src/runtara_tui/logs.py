import logging
from logging.handlers import RotatingFileHandler


LOGGER_NAME = "runtara_tui"


def setup_logger(path: str, verbose: bool) -> logging.Logger:
    # stdout belongs to the terminal UI, so only a file can receive records
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    if path:
        fmt = logging.Formatter("%(asctime)sZ %(levelname)s %(name)s %(message)s")
        handler = RotatingFileHandler(path, maxBytes=5*1024*1024, backupCount=5)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(fmt)
        log.addHandler(handler)
    else:
        log.addHandler(logging.NullHandler())
    log.propagate = False
    return log
