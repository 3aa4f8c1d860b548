# config.py


class Config:
    DEBUG = False
    TESTING = False
    DATABASE = "pharma_sheet.db"
    SYNC_UNIQUE_BY_ID = True        # identifier mode; False matches rows by address
    SYNC_TIMEOUT_SECONDS = 120
    CLEANUP_MAX_WORKERS = 5


class ProductionConfig(Config):
    pass


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    DATABASE = ":memory:"
