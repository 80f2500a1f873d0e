"""
Logging configuration with optional JSON output and sensitive data masking
"""
import json
import logging
import re
import sys

from config.settings import Settings


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages"""

    SENSITIVE_PATTERNS = [
        (r'password["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)', 'password=***'),
        (r'secret["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)', 'secret=***'),
        (r'token["\']?\s*[:=]\s*["\']?([^"\'\s&,}]+)', 'token=***'),
        (r'Bearer\s+([^\s"]+)', 'Bearer ***'),
    ]

    def __init__(self, enabled: bool = True):
        super().__init__()
        self.enabled = enabled

    def _mask(self, value: str) -> str:
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            value = re.sub(pattern, replacement, value, flags=re.IGNORECASE)
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True

        # masks the fully rendered message
        record.msg = self._mask(record.getMessage())
        record.args = None

        return True


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects"""

    def format(self, record: logging.LogRecord) -> str:
        log_dict = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'function': record.funcName,
            'line': record.lineno,
            'message': record.getMessage(),
        }
        if record.exc_info:
            log_dict['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_dict, ensure_ascii=False, default=str)


class LoggingConfig:
    """Centralized logging configuration"""

    _configured = False

    @classmethod
    def configure(cls, settings: Settings):
        """Configure logging for the application (first call wins)"""
        if cls._configured:
            return

        levels = {
            "sqlalchemy.engine": "INFO" if settings.log_sqlalchemy else "WARNING",
            "sqlalchemy.pool": "WARNING",
            "aiosmtplib": "WARNING",
            "passlib": "WARNING",
            "uvicorn.error": "INFO",
        }

        if settings.log_format.lower() == "json":
            formatter = JsonFormatter(datefmt='%Y-%m-%d %H:%M:%S')
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(SensitiveDataFilter())

        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            handlers=[console_handler],
            force=True
        )

        for module, level in levels.items():
            logging.getLogger(module).setLevel(getattr(logging, level.upper()))

        cls._configured = True

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger for a module"""
        return logging.getLogger(name)
