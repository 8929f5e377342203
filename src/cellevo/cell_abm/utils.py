"""
utils.py

Small helpers shared by the console entry points.
"""
import logging
import sys


def setup_console_logging(verbose: bool = False) -> logging.Logger:
    """Attach a console handler to the ``cellevo`` logger once and set its level."""
    log = logging.getLogger("cellevo")
    if not log.handlers:                                # avoid dupes on repeated calls
        h = logging.StreamHandler(sys.stderr)
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        log.addHandler(h)
    level = logging.DEBUG if verbose else logging.INFO
    for h in log.handlers:
        h.setLevel(level)
    log.setLevel(level)
    return log
