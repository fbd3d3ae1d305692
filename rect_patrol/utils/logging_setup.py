import logging
import sys

PACKAGE_LOGGER = "rect_patrol"


def build_logger(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    lvl = logging.INFO
    if verbose and not quiet:
        lvl = logging.DEBUG
    elif quiet:
        lvl = logging.WARNING

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(lvl)
    logger.handlers.clear()
    h = logging.StreamHandler(sys.stdout)
    h.setLevel(lvl)
    fmt = logging.Formatter("[%(levelname)s] %(message)s")
    h.setFormatter(fmt)
    logger.addHandler(h)
    logger.propagate = False
    return logger
