import os


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, '') else default


def _env_list(name):
    value = os.environ.get(name, '')
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Base configuration"""

    # Storage
    LOCAL_BACKUP_DIR = os.environ.get('LOCAL_BACKUP_DIR') or '/data/local_backups'

    # Folder that backup locations are relative to
    BASE_DIR = os.environ.get('BASE_DIR') or '.'

    # Archives
    ZIP_COMPRESSION = _env_int('ZIP_COMPRESSION', 1)  # 0-9
    LOCAL_KEEP_COUNT = _env_int('LOCAL_KEEP_COUNT', 20)  # -1 keeps everything
    BACKUP_BLACKLIST = _env_list('BACKUP_BLACKLIST')

    # File names
    BACKUP_FILE_FORMAT = os.environ.get('BACKUP_FILE_FORMAT') or 'Backup-%Y-%m-%d--%H-%M'
    BACKUP_TIMEZONE = os.environ.get('BACKUP_TIMEZONE') or 'UTC'

    # Logging
    LOG_DIR = os.environ.get('LOG_DIR') or '/data/logs'
    DEBUG = False


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    PROJECT_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(PROJECT_DIR, 'data')
    LOCAL_BACKUP_DIR = os.path.join(DATA_DIR, 'local_backups')
    LOG_DIR = os.path.join(DATA_DIR, 'logs')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    LOCAL_KEEP_COUNT = -1
    BACKUP_BLACKLIST = []


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}
