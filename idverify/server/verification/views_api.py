from flask import Blueprint, current_app, request

from idverify.server import logger
from idverify.server.utils import api_helpers
from idverify.server.utils.api_helpers import generate_error_response, generate_success_response
from idverify.server.utils.base_exceptions import BizException
from idverify.server.verification import service as verification_service
from idverify.server.verification.entity import VerificationRequest

verification_api_bp = Blueprint('api_verification', __name__)


@verification_api_bp.errorhandler(BizException)
def handle_biz_exception(e: BizException):
    if e.http_status >= 500:
        logger.error(f"Verification failed: {e.status_message}", exc_info=e)
    return generate_error_response(None, e.status_code, e.status_message, http_status=e.http_status)


@verification_api_bp.route('/users/<user_id>/verifications', methods=['POST'])
def verify(user_id: str):
    """发起、完成或重新发起身份验证

    请求体：
    {"provider_id": "...", "tenant_id": 1, "properties": [{"key": "status", "value": "INITIATED"}],
     "claims": [{"claim_uri": "http://wso2.org/claims/givenname"}]}

    错误码：
    4000 请求体格式错误
    41xx 请求不满足验证前置条件
    51xx 内部或远程服务错误
    """
    body = request.get_json(silent=True)
    if body is None:
        return generate_error_response(None, api_helpers.STATUS_CODE_INVALID_REQUEST, "request body must be JSON",
                                       http_status=400)
    try:
        verification_request = VerificationRequest.make(body)
    except ValueError as e:
        return generate_error_response(None, api_helpers.STATUS_CODE_INVALID_REQUEST, str(e), http_status=400)

    tenant_id = body.get('tenant_id', current_app.config['DEFAULT_TENANT_ID'])
    if not isinstance(tenant_id, int) or isinstance(tenant_id, bool):
        return generate_error_response(None, api_helpers.STATUS_CODE_INVALID_REQUEST, "tenant_id must be an integer",
                                       http_status=400)

    return generate_success_response(verification_service.verify(user_id, verification_request, tenant_id))
