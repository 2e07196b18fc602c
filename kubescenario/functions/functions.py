import logging
import os
import random
import string
import sys
from typing import Final

from .filter import SingleLineNonEmptyFilter


class Functions:
    SCENARIO_LOG: Final[str] = "SCENARIO"
    PROBE_LOG: Final[str] = "PROBE"
    CLUSTER_LOG: Final[str] = "CLUSTER"

    TRACE: Final[str] = "TRACE"
    DEBUG: Final[str] = "DEBUG"
    INFO: Final[str] = "INFO"
    WARN: Final[str] = "WARN"
    ERROR: Final[str] = "ERROR"
    FATAL: Final[str] = "FATAL"

    @staticmethod
    def setup_log(source):
        level = os.getenv(f"{source.name.upper()}_LOG_LEVEL", "").upper()
        level_importance = {
            Functions.TRACE: logging.DEBUG,
            Functions.DEBUG: logging.DEBUG,
            Functions.INFO: logging.INFO,
            Functions.WARN: logging.WARNING,
            Functions.ERROR: logging.ERROR,
            Functions.FATAL: logging.FATAL
        }
        selected_level = level_importance[level] if level in level_importance else logging.INFO

        source.setLevel(selected_level)
        if not any(isinstance(handler_filter, SingleLineNonEmptyFilter)
                   for handler in source.handlers for handler_filter in handler.filters):
            log_source_handler = logging.StreamHandler(sys.stdout)
            log_source_formatter = logging.Formatter('%(name)s [%(asctime)s] %(levelname)s - %(message)s')
            log_source_handler.setFormatter(log_source_formatter)
            log_source_handler.addFilter(SingleLineNonEmptyFilter())
            source.addHandler(log_source_handler)
        return selected_level

    @staticmethod
    def load(filename):
        with open(filename) as content_file:
            return content_file.read()

    @staticmethod
    def random_suffix(length=5):
        """Lowercase alphanumeric suffix, valid inside a DNS-1123 resource name."""
        return ''.join(random.choice(string.ascii_lowercase + string.digits) for _ in range(length))
