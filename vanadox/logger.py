# ###################################################################
# Logger for handling information, warning and debugging
# ###################################################################
import logging
import sys

LOG_FORMAT = ('%(levelname)-8s [[%(pathname)s::%(lineno)d]'
              '[%(funcName)s]]: %(message)s')

log = logging.getLogger('vanadox')


def configure_logging(level=logging.INFO, stream=None):
    """Send vanadox log records to stream (default stdout) in the package format."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for h in list(log.handlers):
        log.removeHandler(h)
    log.addHandler(handler)
    log.setLevel(level)
    return log
