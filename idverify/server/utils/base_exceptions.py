"""
各领域中自定义错误类型的基类

有时候并不关注具体的错误，只需要知道错误的类型，这时候可以对这里定义的基类进行异常处理
"""
from idverify.server.utils.api_helpers import STATUS_CODE_INVALID_REQUEST, STATUS_CODE_INTERNAL_ERROR


class BizException(Exception):
    """所有业务错误类的基类，初始化时需要携带status_message和业务status_code"""

    def __init__(self, status_message: str, status_code: int):
        super().__init__(status_message)
        self.status_code = status_code
        self.status_message = status_message

    @property
    def http_status(self) -> int:
        """4xxx 业务码对应 HTTP 400，其余对应 HTTP 500"""
        return 400 if 4000 <= self.status_code < 5000 else 500


class InvalidRequestException(BizException):
    """请求无效（client-class）"""

    def __init__(self, status_message, status_code: int = None):
        super().__init__(status_message, status_code if status_code else STATUS_CODE_INVALID_REQUEST)


class InternalError(BizException):
    """内部错误（server-class）"""

    def __init__(self, status_message, status_code: int = None):
        super().__init__(status_message, status_code if status_code else STATUS_CODE_INTERNAL_ERROR)
