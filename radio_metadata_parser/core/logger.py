"""
Structured logging setup for radio_metadata_parser
"""

import logging
import json
from datetime import datetime
from typing import Optional

# Attributes every LogRecord carries; anything else on a record came in via `extra`
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord('', 0, '', 0, '', (), None)).keys()) | {'message', 'asctime'}

PACKAGE_LOGGER = 'radio_metadata_parser'


class StructuredLogger:
    """Logger wrapper that attaches keyword fields to each record"""
    
    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
    
    def _log(self, level: int, msg: str, **kwargs):
        """Internal logging method"""
        if not self.logger.isEnabledFor(level):
            return
        exc_info = kwargs.pop('exc_info', None)
        extra = {
            'timestamp': datetime.now().isoformat(),
            **kwargs
        }
        self.logger.log(level, msg, extra=extra, exc_info=exc_info)
    
    def debug(self, msg: str, **kwargs):
        self._log(logging.DEBUG, msg, **kwargs)
    
    def info(self, msg: str, **kwargs):
        self._log(logging.INFO, msg, **kwargs)
    
    def warning(self, msg: str, **kwargs):
        self._log(logging.WARNING, msg, **kwargs)
    
    def error(self, msg: str, **kwargs):
        self._log(logging.ERROR, msg, **kwargs)
    
    def critical(self, msg: str, **kwargs):
        self._log(logging.CRITICAL, msg, **kwargs)


class JsonFormatter(logging.Formatter):
    """Formatter that outputs JSON strings"""
    
    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON"""
        log_obj = {
            'timestamp': getattr(record, 'timestamp', datetime.now().isoformat()),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        
        # Fields passed as keyword arguments to StructuredLogger
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES and key not in log_obj:
                log_obj[key] = value
        
        if record.exc_info:
            log_obj['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_obj, default=str)


class FriendlyFormatter(logging.Formatter):
    """Plain text formatter that appends keyword fields as key=value pairs"""
    
    def __init__(self):
        super().__init__('%(asctime)s - %(levelname)s - %(message)s')
    
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = [
            f"{key}={value}" for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key != 'timestamp'
        ]
        if fields:
            line = f"{line} ({', '.join(fields)})"
        return line


def setup_logging(log_file: Optional[str] = None,
                  friendly_log_file: Optional[str] = None,
                  level: int = logging.INFO,
                  console: bool = True) -> logging.Logger:
    """Install handlers on the package logger; library code never calls this"""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False
    
    # Main JSON log file
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)
    
    if friendly_log_file:
        friendly_handler = logging.FileHandler(friendly_log_file)
        friendly_handler.setFormatter(FriendlyFormatter())
        logger.addHandler(friendly_handler)
    
    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(FriendlyFormatter())
        logger.addHandler(console_handler)
    
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    
    return logger


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance"""
    return StructuredLogger(name)
