from idverify.server.utils import base_exceptions

"""Client-class errors: the request is malformed or violates a precondition"""


class FlowStatusNotFound(base_exceptions.InvalidRequestException):
    """请求中没有 status 属性"""

    def __init__(self):
        super().__init__("Verification flow status is not found in the request.", 4101)


class InvalidFlowStatus(base_exceptions.InvalidRequestException):
    """status 属性不是 INITIATED、COMPLETED、REINITIATED 之一"""

    def __init__(self, status: str):
        super().__init__(f"Invalid verification flow status: {status}.", 4102)


class WorkflowRunIdNotFound(base_exceptions.InvalidRequestException):
    """请求中没有 workflow run id 属性"""

    def __init__(self):
        super().__init__("Workflow run id is not found in the request.", 4103)


class ProviderInvalidOrDisabled(base_exceptions.InvalidRequestException):
    """provider 不存在或已禁用"""

    def __init__(self, provider_id: str):
        super().__init__(f"Identity verification provider {provider_id} is invalid or disabled.", 4104)


class ProviderConfigIncomplete(base_exceptions.InvalidRequestException):
    """provider 配置缺少必填字段"""

    def __init__(self, missing):
        super().__init__(f"Identity verification provider configuration is missing: {', '.join(missing)}.", 4105)


class ClaimsNotProvided(base_exceptions.InvalidRequestException):
    """发起验证时没有带上任何 claim"""

    def __init__(self):
        super().__init__("No claims are provided for verification.", 4106)


class ClaimValueNotExist(base_exceptions.InvalidRequestException):
    """用户的该 claim 没有值"""

    def __init__(self, claim_uri: str):
        super().__init__(f"Value of the claim {claim_uri} does not exist.", 4107)


class VerificationAlreadyInitiated(base_exceptions.InvalidRequestException):
    """所有 claim 都已经发起过验证"""

    def __init__(self):
        super().__init__("Verification is already initiated for the requested claims.", 4108)


class ClaimsNotFoundForWorkflowRun(base_exceptions.InvalidRequestException):
    """没有与 workflow run id 对应的 claim"""

    def __init__(self, workflow_run_id: str):
        super().__init__(f"No verification claims are found for the workflow run {workflow_run_id}.", 4109)


class ReinitiationNotAllowed(base_exceptions.InvalidRequestException):
    """只有 awaiting_input 状态的验证可以重新发起"""

    def __init__(self, status: str):
        super().__init__(f"Reinitiation is not allowed for a verification in {status} status.", 4110)


"""Server-class errors: infrastructure or remote failures. the cause is chained with `raise ... from`"""


class ProviderRetrievalFailed(base_exceptions.InternalError):
    def __init__(self, provider_id: str):
        super().__init__(f"Error while retrieving identity verification provider {provider_id}.", 5101)


class ClaimMappingRetrievalFailed(base_exceptions.InternalError):
    """读取 claim 映射或用户属性时出错"""

    def __init__(self, user_id: str, detail: str = None):
        message = f"Error while retrieving claim mappings of user {user_id}."
        if detail:
            message = f"{message} {detail}"
        super().__init__(message, 5102)


class InitiationFailed(base_exceptions.InternalError):
    def __init__(self, user_id: str):
        super().__init__(f"Error while initiating identity verification for user {user_id}.", 5103)


class WorkflowStatusRetrievalFailed(base_exceptions.InternalError):
    def __init__(self, workflow_run_id: str):
        super().__init__(f"Error while retrieving the status of workflow run {workflow_run_id}.", 5104)


class CompletionFailed(base_exceptions.InternalError):
    def __init__(self, workflow_run_id: str):
        super().__init__(f"Error while updating verification claims of workflow run {workflow_run_id}.", 5105)


class ReinitiationFailed(base_exceptions.InternalError):
    def __init__(self, workflow_run_id: str):
        super().__init__(f"Error while reinitiating identity verification of workflow run {workflow_run_id}.", 5106)


class ApplicantIdNotFound(base_exceptions.InternalError):
    """claim metadata 中没有 applicant id"""

    def __init__(self, workflow_run_id: str):
        super().__init__(f"Applicant id is not found in the claims of workflow run {workflow_run_id}.", 5107)
