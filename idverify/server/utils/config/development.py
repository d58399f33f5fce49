class DevelopmentConfig(object):
    DATABASE_ECHO = True
