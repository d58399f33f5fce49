import logging

from flask import Flask, request

from idverify.server.utils.log import CustomFormatter

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def create_app() -> Flask:
    """创建 flask app"""
    from idverify.rpc import init as init_rpc
    from idverify.rpc.onfido import Onfido
    from idverify.server.utils import api_helpers
    from idverify.server.utils.api_helpers import generate_error_response, generate_success_response
    from idverify.server.utils.config import get_config, print_config

    app = Flask(__name__)

    # load app config
    _config = get_config()
    app.config.from_object(_config)

    """
    统一日志机制

    规则如下：
    - DEBUG 模式下会输出 DEBUG 等级的日志，否则输出 INFO 及以上等级的日志
    - 日志通过 `extra=structured(...)` 携带用户、provider 等结构化信息，由 CustomFormatter 拼接到消息前
    """
    root_logger = logging.getLogger()
    if app.config['DEBUG']:
        root_logger.setLevel(logging.DEBUG)
    else:
        root_logger.setLevel(logging.INFO)
    if not any(isinstance(h.formatter, CustomFormatter) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(LOG_FORMAT))
        root_logger.addHandler(handler)

    # 初始化 RPC 模块
    init_rpc(logger=logger)
    Onfido.set_request_timeout(app.config['ONFIDO_REQUEST_TIMEOUT'])
    Onfido.set_status_retry(app.config['ONFIDO_STATUS_RETRY'])

    # 导入并注册 blueprints
    from idverify.server.verification.views_api import verification_api_bp
    app.register_blueprint(verification_api_bp, url_prefix='/api/v1')

    @app.route('/_healthCheck')
    def health_check():
        return generate_success_response(None)

    @app.before_request
    def log_request():
        """日志中记录请求"""
        logger.info(f'Request received: {request.method} {request.path}')

    from idverify.server.utils.db.sql import db_session

    @app.teardown_appcontext
    def shutdown_db_session(exception=None):
        db_session.remove()

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Unhandled error: {repr(error)}")
        return generate_error_response(None, api_helpers.STATUS_CODE_INTERNAL_ERROR, http_status=500)

    print_config(app, logger)

    return app
