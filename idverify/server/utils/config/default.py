class Config(object):
    """
    the base class for configuration. all keys must define here.
    """
    DEBUG = True
    SERVICE_NAME = "idverify"
    SECRET_KEY = 'development_key'

    """
    Connection settings
    """
    # database. DATABASE_URI takes precedence over POSTGRES_CONNECTION when set
    POSTGRES_CONNECTION = {
        'dbname'  : 'idverify',
        'user'    : 'idverify',
        'password': '',
        'host'    : 'localhost',
        'port'    : 5432
    }
    POSTGRES_SCHEMA = 'idverify'
    DATABASE_URI = None
    DATABASE_ECHO = False

    """
    业务设置
    """
    DEFAULT_TENANT_ID = 1

    # remote verification provider
    ONFIDO_REQUEST_TIMEOUT = 10  # seconds per HTTP call
    ONFIDO_STATUS_RETRY = True  # retry timed out workflow run status polls (GET only)

    # fields that should be overwritten in production environment
    PRODUCTION_OVERWRITE_FIELDS = ('SECRET_KEY',
                                   )

    # fields that should not be in log
    PRODUCTION_SECURE_FIELDS = ("POSTGRES_CONNECTION.password",
                                "DATABASE_URI",
                                "SECRET_KEY",
                                )
