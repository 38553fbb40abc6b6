"""Console status output. Everything echoed to the console also lands in the log, so a run can be
reconstructed from the log file alone.
"""
import logging
import sys


__all__ = ['setupStatus', 'updateStatus']
logger = logging.getLogger(__name__)
status_logger = None


def setupStatus(stream=None):
    """Sets up a logger for the status output. Goes to stdout unless another stream is given."""
    global status_logger
    handler = logging.StreamHandler(stream=stream if stream else sys.stdout)
    handler.setFormatter(logging.Formatter('%(message)s'))

    status_logger = logging.getLogger('flickrmirror_status')
    status_logger.setLevel(logging.INFO)
    # Status lines already go to the log through this module's logger.
    status_logger.propagate = False
    status_logger.handlers = [handler]


def updateStatus(msg, level=logging.INFO):
    """Echoes msg to the console (once setupStatus() was called) and records it in the log."""
    logger.log(level, msg)
    if status_logger is not None:
        status_logger.info(msg)
