from dataclasses import dataclass
from typing import Dict, Optional

from idverify.rpc import RpcUnexpectedResponse, ensure_slots
from idverify.rpc.http import HttpRpc, DEFAULT_TIMEOUT

# keys of the provider configuration bag used by this client
CONFIG_TOKEN = 'token'
CONFIG_BASE_URL = 'base_url'


def _make(cls, dct: Dict):
    try:
        return cls(**ensure_slots(cls, dict(dct)))
    except TypeError as e:
        raise RpcUnexpectedResponse(200, "cannot build {} from {}".format(cls.__name__, dct)) from e


@dataclass
class Applicant:
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @classmethod
    def make(cls, dct: Dict) -> "Applicant":
        return _make(cls, dct)


@dataclass
class WorkflowRun:
    id: str
    status: str
    applicant_id: Optional[str] = None
    workflow_id: Optional[str] = None

    @classmethod
    def make(cls, dct: Dict) -> "WorkflowRun":
        return _make(cls, dct)


@dataclass
class SdkToken:
    token: str

    @classmethod
    def make(cls, dct: Dict) -> "SdkToken":
        return _make(cls, dct)


class Onfido:
    """Onfido v3.6 REST client. Every call takes the provider's configuration bag, so one process can talk to
    several configured providers."""

    _timeout = DEFAULT_TIMEOUT
    _status_retry = True

    @classmethod
    def set_request_timeout(cls, timeout: float) -> None:
        cls._timeout = timeout

    @classmethod
    def set_status_retry(cls, retry: bool) -> None:
        cls._status_retry = retry

    @classmethod
    def _url(cls, config: Dict[str, str], path: str) -> str:
        return '{}{}'.format(config[CONFIG_BASE_URL].rstrip('/'), path)

    @classmethod
    def _headers(cls, config: Dict[str, str]) -> Dict[str, str]:
        return {'Authorization': 'Token token={}'.format(config[CONFIG_TOKEN]),
                'Accept'       : 'application/json'}

    @classmethod
    def create_applicant(cls, config: Dict[str, str], fields: Dict[str, str]) -> str:
        resp = HttpRpc.call(method='POST',
                            url=cls._url(config, '/applicants'),
                            data=fields,
                            headers=cls._headers(config),
                            timeout=cls._timeout)
        return Applicant.make(resp).id

    @classmethod
    def update_applicant(cls, config: Dict[str, str], fields: Dict[str, str], applicant_id: str) -> None:
        HttpRpc.call(method='PUT',
                     url=cls._url(config, '/applicants/{}'.format(applicant_id)),
                     data=fields,
                     headers=cls._headers(config),
                     timeout=cls._timeout)

    @classmethod
    def create_workflow_run(cls, config: Dict[str, str], workflow_id: str, applicant_id: str) -> str:
        resp = HttpRpc.call(method='POST',
                            url=cls._url(config, '/workflow_runs'),
                            data={'workflow_id' : workflow_id,
                                  'applicant_id': applicant_id},
                            headers=cls._headers(config),
                            timeout=cls._timeout)
        return WorkflowRun.make(resp).id

    @classmethod
    def create_sdk_token(cls, config: Dict[str, str], applicant_id: str) -> str:
        resp = HttpRpc.call(method='POST',
                            url=cls._url(config, '/sdk_token'),
                            data={'applicant_id': applicant_id},
                            headers=cls._headers(config),
                            timeout=cls._timeout)
        return SdkToken.make(resp).token

    @classmethod
    def get_workflow_run_status(cls, config: Dict[str, str], workflow_run_id: str) -> str:
        resp = HttpRpc.call(method='GET',
                            url=cls._url(config, '/workflow_runs/{}'.format(workflow_run_id)),
                            headers=cls._headers(config),
                            retry=cls._status_retry,
                            timeout=cls._timeout)
        return WorkflowRun.make(resp).status
