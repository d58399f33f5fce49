from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from idverify.server.utils.config import get_config

_config = get_config()


def _database_uri() -> str:
    if _config.DATABASE_URI:
        return _config.DATABASE_URI
    _conn_config = _config.POSTGRES_CONNECTION
    return f'postgresql+psycopg2://{_conn_config["user"]}:{_conn_config["password"]}@{_conn_config["host"]}:{_conn_config["port"]}/{_conn_config["dbname"]}'


def _engine_options(uri: str) -> dict:
    if uri.startswith('sqlite'):
        # in-memory sqlite must share one connection between the scoped sessions of all threads
        return {'connect_args': {'check_same_thread': False}, 'poolclass': StaticPool}
    return {'connect_args': {'options': f'-c search_path={_config.POSTGRES_SCHEMA}'}}


_uri = _database_uri()
_engine = create_engine(_uri, echo=_config.DATABASE_ECHO, **_engine_options(_uri))
db_session = scoped_session(sessionmaker(bind=_engine))
Base = declarative_base()


def register_model_to_base():
    import idverify.server.verification.model
    _ = idverify.server.verification.model


def create_table():
    """建表"""
    register_model_to_base()
    Base.metadata.create_all(_engine)


def drop_table():
    """删表，仅用于测试"""
    register_model_to_base()
    Base.metadata.drop_all(_engine)
