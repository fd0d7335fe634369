import os
import logging
from logging.handlers import RotatingFileHandler
from flask import Config


def load_config(config_name=None, **overrides):
    """
    Load the configuration for config_name.

    Args:
        config_name: Key of backupset.config.config, defaults to the
            BACKUPSET_ENV environment variable or 'production'
        **overrides: Values replacing the loaded ones

    Returns:
        flask.Config mapping
    """
    if config_name is None:
        config_name = os.environ.get('BACKUPSET_ENV', 'production')

    from backupset.config import config as configs
    if config_name not in configs:
        raise ValueError(
            f"Invalid configuration: {config_name}. "
            f"Valid options: {list(configs.keys())}"
        )

    settings = Config(os.path.abspath(os.path.dirname(os.path.dirname(__file__))))
    settings.from_object(configs[config_name])
    settings.from_mapping(overrides)

    return settings


def configure_logging(config):
    """Configure application logging"""

    # Create logs directory if it doesn't exist
    log_dir = config['LOG_DIR']
    os.makedirs(log_dir, exist_ok=True)

    # Set log level based on environment
    log_level = logging.DEBUG if config.get('DEBUG', False) else logging.INFO

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )
    console_handler.setFormatter(console_formatter)

    # File handler
    file_handler = RotatingFileHandler(
        os.path.join(log_dir, 'backupset.log'),
        maxBytes=10485760,  # 10MB
        backupCount=10
    )
    file_handler.setLevel(log_level)
    file_formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
    )
    file_handler.setFormatter(file_formatter)

    # Configure package logger
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(log_level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.addHandler(console_handler)
    package_logger.addHandler(file_handler)

    package_logger.info(f"Logging configured (level: {logging.getLevelName(log_level)})")
    return package_logger
