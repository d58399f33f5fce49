class TestingConfig(object):
    DEBUG = False
    TESTING = True
    DATABASE_URI = 'sqlite://'
    ONFIDO_REQUEST_TIMEOUT = 1
    ONFIDO_STATUS_RETRY = False
