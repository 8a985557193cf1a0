"""
Logging Configuration for the WorkOrbit Hierarchy Service
Console plus rotating file output, and structured logging for join request transitions
"""

import logging
import logging.handlers
import os
from datetime import datetime
from typing import Optional


class WorkflowLogFormatter(logging.Formatter):
    """Console formatter with color-coded levels"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        original_levelname = record.levelname
        color = self.COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # File handlers share the record; keep their output uncolored
            record.levelname = original_levelname


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file_rotation: bool = True
):
    """Setup logging for the application"""

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {log_level}')

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_formatter = WorkflowLogFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(console_formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        if enable_file_rotation:
            # Rotating file handler (10MB max, keep 5 backups)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10*1024*1024,
                backupCount=5
            )
        else:
            file_handler = logging.FileHandler(log_file)

        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

    # SQL echo is controlled by the engine, keep the logger quiet otherwise
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    for logger_name in (
        'workorbit.hierarchy.service',
        'workorbit.auth.service',
        'workorbit.notifications.service',
        'workorbit.notifications.worker',
    ):
        logging.getLogger(logger_name).setLevel(numeric_level)

    return root_logger


def log_workflow_operation(
    operation: str,
    request_id: Optional[str] = None,
    duration: Optional[float] = None,
    success: bool = True,
    details: Optional[dict] = None,
    logger: Optional[logging.Logger] = None
):
    """Log a join request transition with a standardized format"""

    if logger is None:
        logger = logging.getLogger('workorbit.hierarchy.service')

    message_parts = [f"JOIN REQUEST - {operation.upper().replace('_', ' ')}:"]

    if request_id:
        message_parts.append(f"Request: {request_id}")

    if duration is not None:
        message_parts.append(f"Duration: {duration:.3f}s")

    if details:
        for key, value in details.items():
            message_parts.append(f"{key}: {value}")

    message_parts.append("OK" if success else "FAILED")
    message = " | ".join(message_parts)

    if success:
        logger.info(message)
    else:
        logger.warning(message)


class WorkflowOperationLogger:
    """Context manager timing a join request transition and logging its outcome"""

    def __init__(
        self,
        operation: str,
        request_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.operation = operation
        self.request_id = request_id
        self.logger = logger or logging.getLogger('workorbit.hierarchy.service')
        self.start_time = None
        self.success = False
        self.details = {}

    def __enter__(self):
        self.start_time = datetime.now().timestamp()
        self.logger.debug(f"JOIN REQUEST - {self.operation.upper()}: starting for request {self.request_id}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = datetime.now().timestamp() - self.start_time if self.start_time else 0

        if exc_type is None:
            self.success = True
        else:
            self.details['error'] = getattr(exc_val, 'detail', None) or str(exc_val)

        log_workflow_operation(
            self.operation,
            self.request_id,
            duration,
            self.success,
            self.details,
            self.logger
        )
        return False

    def add_detail(self, key: str, value):
        """Add additional details to the log"""
        self.details[key] = value


def init_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """Initialize logging configuration for the running service"""
    setup_logging(
        log_level=log_level,
        log_file=log_file or None,
        enable_console=True,
        enable_file_rotation=True
    )
