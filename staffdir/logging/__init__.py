# staffdir/logging/__init__.py

from .logger_setup import setup_application_logging, get_structured_logger, StructuredLogger
from .log_models import LogLevel, LogSection, LogSubsection, StructuredLogEntry

# Короткий алиас
get_logger = get_structured_logger

__all__ = [
    'setup_application_logging',
    'get_structured_logger',
    'get_logger',
    'StructuredLogger',
    'StructuredLogEntry',
    'LogLevel',
    'LogSection',
    'LogSubsection',
]
