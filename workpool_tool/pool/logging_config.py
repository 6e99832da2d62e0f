"""
Logging configuration for workpool-tool.

Verbosity levels map to the -v flag count used by every command:
    0: WARNING (default)
    1: INFO (-v)
    2: DEBUG (-vv)
    3+: DEBUG including AWS SDK internals (-vvv)

All log output goes to stderr so JSON on stdout stays machine readable.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Third-party loggers that are only useful at the highest verbosity
_NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(verbose_count: int = 0) -> None:
    """
    Configure logging based on verbosity level.

    Args:
        verbose_count: Number of -v flags (0-3+)
    """
    if verbose_count <= 0:
        level = logging.WARNING
    elif verbose_count == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )

    dependency_level = logging.DEBUG if verbose_count >= 3 else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(dependency_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
