from typing import Dict, List, NamedTuple, Optional

from ddtrace import tracer
from sqlalchemy.exc import SQLAlchemyError

from idverify.rpc import RpcException
from idverify.rpc.onfido import Onfido
from idverify.server import logger
from idverify.server.utils.locks import keyed_lock
from idverify.server.utils.log import structured
from idverify.server.verification import exceptions
from idverify.server.verification.consts import CONFIG_WORKFLOW_ID, FlowStatus, METADATA_APPLICANT_ID, \
    METADATA_WORKFLOW_RUN_ID, METADATA_WORKFLOW_STATUS, PROPERTY_STATUS, PROPERTY_WORKFLOW_RUN_ID, \
    REQUIRED_CONFIG_KEYS, UnknownWorkflowStatus, WorkflowRunStatus
from idverify.server.verification.entity import ClaimResult, RequestedClaim, VerificationRequest
from idverify.server.verification.model import Applicant, Claim, Provider, UserAttribute, UserNotFoundError

"""Dispatching"""


def verify(user_id: str, request: VerificationRequest, tenant_id: int) -> List[ClaimResult]:
    """身份验证入口。根据请求中的 flow status 发起、完成或重新发起一次 Onfido 验证。

    The flow status is validated before the provider is looked up.

    :param user_id: 被验证的用户
    :param request: 验证请求
    :param tenant_id: 租户
    :return: 验证中的 claim 列表。INITIATED 和 REINITIATED 时 metadata 中带有未持久化的 sdk_token
    """
    flow_status = get_flow_status(request)
    provider = get_validated_provider(request, tenant_id)
    config = get_validated_config(provider)

    if flow_status is FlowStatus.INITIATED:
        return initiate_verification(user_id, request, provider, config, tenant_id)
    if flow_status is FlowStatus.COMPLETED:
        return complete_verification(user_id, request, provider, config, tenant_id)
    return reinitiate_verification(user_id, request, provider, config, tenant_id)


def get_flow_status(request: VerificationRequest) -> FlowStatus:
    status_value = request.get_property(PROPERTY_STATUS)
    if status_value is None:
        raise exceptions.FlowStatusNotFound()
    try:
        return FlowStatus.from_string(status_value)
    except ValueError:
        raise exceptions.InvalidFlowStatus(status_value) from None


def get_workflow_run_id(request: VerificationRequest) -> str:
    workflow_run_id = request.get_property(PROPERTY_WORKFLOW_RUN_ID)
    if workflow_run_id is None:
        raise exceptions.WorkflowRunIdNotFound()
    return workflow_run_id


"""Provider validation"""


def get_validated_provider(request: VerificationRequest, tenant_id: int) -> Provider:
    try:
        provider = Provider.get_by_id(request.provider_id, tenant_id)
    except SQLAlchemyError as e:
        raise exceptions.ProviderRetrievalFailed(request.provider_id) from e

    if provider is None or not provider.enabled:
        raise exceptions.ProviderInvalidOrDisabled(request.provider_id)
    return provider


def get_validated_config(provider: Provider) -> Dict[str, str]:
    config = provider.config or {}
    missing = [key for key in REQUIRED_CONFIG_KEYS if not _is_not_blank(config.get(key))]
    if missing:
        raise exceptions.ProviderConfigIncomplete(missing)
    return dict(config)


def _is_not_blank(value) -> bool:
    return value is not None and bool(str(value).strip())


"""Initiation"""


class PendingClaim(NamedTuple):
    """a requested claim that still has to be submitted to the provider"""
    claim_uri: str
    provider_claim: str
    value: str
    record: Optional[Claim]  # persisted claim without an applicant id, if any


def initiate_verification(user_id: str, request: VerificationRequest, provider: Provider, config: Dict[str, str],
                          tenant_id: int) -> List[ClaimResult]:
    """创建或更新 applicant，创建 workflow run 并签发 SDK token

    Nothing is rolled back when a remote call fails half way. A created applicant is recorded right away, so the next
    attempt updates it instead of creating another one.
    """
    if not request.claims:
        raise exceptions.ClaimsNotProvided()

    log_extra = structured(user_id=user_id, provider=provider.provider_id, tenant=tenant_id)

    # check-then-write on the claim store, serialized per user and provider
    with keyed_lock(user_id, provider.provider_id, tenant_id):
        pending = get_unverified_claims(user_id, tenant_id, provider, request.claims)
        if not pending:
            logger.info("Verification already initiated for all requested claims", extra=log_extra)
            raise exceptions.VerificationAlreadyInitiated()

        try:
            applicant_id = get_applicant_id(user_id, provider, tenant_id)
            applicant_id = create_or_update_applicant(user_id, provider, config, build_applicant_request_body(pending),
                                                      applicant_id, tenant_id)
            workflow_run_id = create_workflow_run(config, applicant_id)
            sdk_token = create_sdk_token(config, applicant_id)

            metadata = get_initiated_verification_metadata(applicant_id, workflow_run_id)
            claims = []
            for item in pending:
                claim = item.record if item.record is not None else Claim(claim_uri=item.claim_uri)
                claim.user_id = user_id
                claim.tenant_id = tenant_id
                claim.provider_id = provider.provider_id
                claim.is_verified = False
                claim.meta = dict(metadata)
                claims.append(claim)
            Claim.save(user_id, claims, tenant_id)
        except (RpcException, SQLAlchemyError) as e:
            logger.error(f"Initiating verification failed: {repr(e)}", extra=log_extra)
            raise exceptions.InitiationFailed(user_id) from e

    logger.info(f"Verification initiated, workflow run {workflow_run_id}", extra=log_extra)
    # the token is attached only after the claims are persisted
    return [ClaimResult.from_claim(claim, sdk_token=sdk_token) for claim in claims]


def get_unverified_claims(user_id: str, tenant_id: int, provider: Provider,
                          requested_claims: List[RequestedClaim]) -> List[PendingClaim]:
    """找出还没有发起过验证的 claim 及其属性值

    A claim whose persisted record already carries an applicant id is in flight (or done) and is skipped.
    """
    pending = []
    seen = set()
    claim_mappings = provider.claim_mappings or {}
    try:
        for requested in requested_claims:
            claim_uri = requested.claim_uri
            if claim_uri in seen:
                continue
            seen.add(claim_uri)

            record = Claim.get_claim(user_id, claim_uri, provider.provider_id, tenant_id)
            if record is not None and record.meta and record.meta.get(METADATA_APPLICANT_ID):
                logger.debug(f"Claim {claim_uri} already has an applicant, skipped",
                             extra=structured(user_id=user_id, provider=provider.provider_id))
                continue

            value = UserAttribute.get_value(user_id, claim_uri, tenant_id)
            if not _is_not_blank(value):
                raise exceptions.ClaimValueNotExist(claim_uri)

            provider_claim = claim_mappings.get(claim_uri)
            if not provider_claim:
                raise exceptions.ClaimMappingRetrievalFailed(user_id, f"Claim {claim_uri} is not mapped by the provider.")
            pending.append(PendingClaim(claim_uri=claim_uri, provider_claim=provider_claim, value=value, record=record))
    except UserNotFoundError as e:
        logger.warning("User does not exist with the given user id", extra=structured(user_id=user_id, tenant=tenant_id))
        raise exceptions.ClaimMappingRetrievalFailed(user_id) from e
    except SQLAlchemyError as e:
        raise exceptions.ClaimMappingRetrievalFailed(user_id) from e
    return pending


def build_applicant_request_body(pending: List[PendingClaim]) -> Dict[str, str]:
    return {item.provider_claim: item.value for item in pending}


def get_applicant_id(user_id: str, provider: Provider, tenant_id: int) -> Optional[str]:
    """一个用户在一个 provider 下只有一个 applicant。先看已有 claim 的 metadata，再看 applicant 创建记录"""
    for claim in Claim.get_claims(user_id, provider.provider_id, tenant_id):
        if claim.meta and claim.meta.get(METADATA_APPLICANT_ID):
            return claim.meta[METADATA_APPLICANT_ID]
    return Applicant.find(user_id, provider.provider_id, tenant_id)


def create_or_update_applicant(user_id: str, provider: Provider, config: Dict[str, str], fields: Dict[str, str],
                               applicant_id: Optional[str], tenant_id: int) -> str:
    if not applicant_id:
        with tracer.trace('onfido.create_applicant'):
            applicant_id = Onfido.create_applicant(config, fields)
        Applicant.remember(user_id, provider.provider_id, tenant_id, applicant_id)
        logger.info(f"Applicant {applicant_id} created", extra=structured(user_id=user_id, provider=provider.provider_id))
        return applicant_id

    with tracer.trace('onfido.update_applicant'):
        Onfido.update_applicant(config, fields, applicant_id)
    return applicant_id


def create_workflow_run(config: Dict[str, str], applicant_id: str) -> str:
    with tracer.trace('onfido.create_workflow_run'):
        return Onfido.create_workflow_run(config, config[CONFIG_WORKFLOW_ID], applicant_id)


def create_sdk_token(config: Dict[str, str], applicant_id: str) -> str:
    with tracer.trace('onfido.create_sdk_token'):
        return Onfido.create_sdk_token(config, applicant_id)


def get_initiated_verification_metadata(applicant_id: str, workflow_run_id: str) -> Dict[str, str]:
    return {METADATA_APPLICANT_ID    : applicant_id,
            METADATA_WORKFLOW_RUN_ID : workflow_run_id,
            METADATA_WORKFLOW_STATUS : WorkflowRunStatus.AWAITING_INPUT.value}


"""Completion"""


def complete_verification(user_id: str, request: VerificationRequest, provider: Provider, config: Dict[str, str],
                          tenant_id: int) -> List[ClaimResult]:
    """SDK 流程结束后，拉取 workflow run 状态并写回未验证的 claim"""
    workflow_run_id = get_workflow_run_id(request)
    workflow_run_status = get_workflow_run_status(config, workflow_run_id)

    try:
        claims = get_claims_by_workflow_run_id(user_id, workflow_run_id, provider, tenant_id)
        for claim in claims:
            if claim.is_verified:
                continue
            update_metadata_with_workflow_status(claim, workflow_run_status)
            Claim.update(user_id, claim, tenant_id)
    except SQLAlchemyError as e:
        raise exceptions.CompletionFailed(workflow_run_id) from e

    logger.info(f"Workflow run {workflow_run_id} reported {workflow_run_status.value}",
                extra=structured(user_id=user_id, provider=provider.provider_id))
    return [ClaimResult.from_claim(claim) for claim in claims]


def get_workflow_run_status(config: Dict[str, str], workflow_run_id: str) -> WorkflowRunStatus:
    try:
        with tracer.trace('onfido.get_workflow_run_status'):
            status = Onfido.get_workflow_run_status(config, workflow_run_id)
        return WorkflowRunStatus.from_string(status)
    except (RpcException, UnknownWorkflowStatus) as e:
        raise exceptions.WorkflowStatusRetrievalFailed(workflow_run_id) from e


def get_claims_by_workflow_run_id(user_id: str, workflow_run_id: str, provider: Provider,
                                  tenant_id: int) -> List[Claim]:
    """取出该 workflow run 下属于当前用户的 claim，没有则视为请求错误"""
    claims = [claim for claim in Claim.get_claims_by_metadata(METADATA_WORKFLOW_RUN_ID, workflow_run_id,
                                                              provider.provider_id, tenant_id)
              if claim.user_id == user_id]
    if not claims:
        raise exceptions.ClaimsNotFoundForWorkflowRun(workflow_run_id)
    return claims


def update_metadata_with_workflow_status(claim: Claim, workflow_run_status: WorkflowRunStatus) -> None:
    """写入 workflow 状态。结束状态只能由 webhook 写入，这里一律写成 processing"""
    metadata = dict(claim.meta or {})
    if workflow_run_status.is_ending:
        metadata[METADATA_WORKFLOW_STATUS] = WorkflowRunStatus.PROCESSING.value
    else:
        metadata[METADATA_WORKFLOW_STATUS] = workflow_run_status.value
    claim.meta = metadata


"""Reinitiation"""


def reinitiate_verification(user_id: str, request: VerificationRequest, provider: Provider, config: Dict[str, str],
                            tenant_id: int) -> List[ClaimResult]:
    """为停在 awaiting_input 的验证重新签发 SDK token。新 token 不会持久化"""
    workflow_run_id = get_workflow_run_id(request)
    try:
        claims = get_claims_by_workflow_run_id(user_id, workflow_run_id, provider, tenant_id)
    except SQLAlchemyError as e:
        raise exceptions.ReinitiationFailed(workflow_run_id) from e

    metadata = claims[0].meta or {}
    try:
        workflow_run_status = WorkflowRunStatus.from_string(metadata.get(METADATA_WORKFLOW_STATUS))
    except UnknownWorkflowStatus as e:
        raise exceptions.ReinitiationFailed(workflow_run_id) from e

    if workflow_run_status is not WorkflowRunStatus.AWAITING_INPUT:
        raise exceptions.ReinitiationNotAllowed(workflow_run_status.value)

    applicant_id = metadata.get(METADATA_APPLICANT_ID)
    if not applicant_id:
        raise exceptions.ApplicantIdNotFound(workflow_run_id)

    try:
        sdk_token = create_sdk_token(config, applicant_id)
    except RpcException as e:
        raise exceptions.ReinitiationFailed(workflow_run_id) from e

    logger.info(f"SDK token reissued for workflow run {workflow_run_id}",
                extra=structured(user_id=user_id, provider=provider.provider_id))
    return [ClaimResult.from_claim(claim, sdk_token=sdk_token) for claim in claims]
