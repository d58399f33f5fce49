import logging
from dataclasses import fields
from typing import Dict

_logger = logging.getLogger(__name__)


def init(logger=None):
    """初始化 idverify.rpc 模块，注入上层使用的 logger

    """
    global _logger

    if logger:
        _logger = logger


def ensure_slots(cls, dct: Dict):
    """移除 dataclass 中不存在的key，预防 dataclass 的 __init__ 中 unexpected argument 的发生。

    Onfido returns far more fields than we keep, so dropped keys are only logged at debug level.
    """
    _names = [x.name for x in fields(cls)]
    _del = []
    for key in dct:
        if key not in _names:
            _del.append(key)
    for key in _del:
        del dct[key]  # delete unexpected keys
        _logger.debug("Unexpected field `{}` is removed when converting dict to dataclass `{}`".format(key, cls.__name__))
    return dct


class RpcException(ConnectionError):
    """HTTP 4xx or 5xx"""
    pass


class RpcTimeout(RpcException, TimeoutError):
    """timeout"""
    pass


class RpcClientException(RpcException):
    """HTTP 4xx"""
    pass


class RpcResourceNotFound(RpcClientException):
    """HTTP 404"""
    pass


class RpcBadRequest(RpcClientException):
    """HTTP 400"""
    pass


class RpcServerException(RpcException):
    """HTTP 5xx"""
    pass


class RpcServerNotAvailable(RpcServerException):
    """HTTP 503"""
    pass


class RpcUnexpectedResponse(RpcServerException):
    """response body does not match the expected shape"""
    pass
