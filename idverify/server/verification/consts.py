"""
验证流程相关常量：请求属性名、claim metadata 字段、provider 配置字段以及 Onfido workflow run 状态机
"""
import enum

from idverify.rpc.onfido import CONFIG_BASE_URL, CONFIG_TOKEN

# request properties
PROPERTY_STATUS = "status"
PROPERTY_WORKFLOW_RUN_ID = "onfido_workflow_run_id"

# claim metadata. SDK_TOKEN is response-only and never persisted
METADATA_APPLICANT_ID = "onfido_applicant_id"
METADATA_WORKFLOW_RUN_ID = "onfido_workflow_run_id"
METADATA_WORKFLOW_STATUS = "onfido_workflow_status"
METADATA_SDK_TOKEN = "sdk_token"

# provider configuration bag. token and base_url are the keys the Onfido client reads
CONFIG_WEBHOOK_TOKEN = "webhook_token"
CONFIG_WORKFLOW_ID = "workflow_id"
REQUIRED_CONFIG_KEYS = (CONFIG_TOKEN, CONFIG_BASE_URL, CONFIG_WEBHOOK_TOKEN, CONFIG_WORKFLOW_ID)


class FlowStatus(enum.Enum):
    """SDK flow status sent by the caller"""
    INITIATED = "INITIATED"
    COMPLETED = "COMPLETED"
    REINITIATED = "REINITIATED"

    @classmethod
    def from_string(cls, value: str) -> "FlowStatus":
        normalized = (value or "").strip().upper()
        for status in cls:
            if status.value == normalized:
                return status
        raise ValueError(f"invalid flow status {value}")


class StatusCategory(enum.Enum):
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    ENDING = "ending"


class UnknownWorkflowStatus(ValueError):
    pass


class WorkflowRunStatus(enum.Enum):
    """Onfido workflow run 状态"""
    AWAITING_INPUT = "awaiting_input"
    AWAITING_CLIENT_INPUT = "awaiting_client_input"
    PROCESSING = "processing"
    APPROVED = "approved"
    DECLINED = "declined"
    REVIEW = "review"
    ABANDONED = "abandoned"
    ERROR = "error"

    @classmethod
    def from_string(cls, value: str) -> "WorkflowRunStatus":
        for status in cls:
            if status.value == value:
                return status
        raise UnknownWorkflowStatus(f"unknown workflow run status {value}")

    @property
    def category(self) -> StatusCategory:
        return _CATEGORIES[self]

    @property
    def is_ending(self) -> bool:
        """ending statuses are authoritative only through the completion webhook"""
        return self.category is StatusCategory.ENDING


_CATEGORIES = {
    WorkflowRunStatus.AWAITING_INPUT       : StatusCategory.AWAITING_INPUT,
    WorkflowRunStatus.AWAITING_CLIENT_INPUT: StatusCategory.PROCESSING,
    WorkflowRunStatus.PROCESSING           : StatusCategory.PROCESSING,
    WorkflowRunStatus.APPROVED             : StatusCategory.ENDING,
    WorkflowRunStatus.DECLINED             : StatusCategory.ENDING,
    WorkflowRunStatus.REVIEW               : StatusCategory.ENDING,
    WorkflowRunStatus.ABANDONED            : StatusCategory.ENDING,
    WorkflowRunStatus.ERROR                : StatusCategory.ENDING,
}
