import os


class ProductionConfig(object):
    DEBUG = False
    SECRET_KEY = os.environ.get('IDVERIFY_SECRET_KEY', 'development_key')
    POSTGRES_CONNECTION = {
        'host'    : os.environ.get('IDVERIFY_PG_HOST', 'localhost'),
        'password': os.environ.get('IDVERIFY_PG_PASSWORD', ''),
    }
