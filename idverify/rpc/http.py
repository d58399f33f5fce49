from typing import Dict

import requests

from idverify import rpc
from idverify.rpc import RpcBadRequest, RpcClientException, RpcResourceNotFound, RpcServerException, \
    RpcServerNotAvailable, RpcTimeout, RpcUnexpectedResponse

DEFAULT_TIMEOUT = 10
RETRY_TRIALS = 3


class HttpRpc:
    @classmethod
    def _status_code_raise(cls, response: requests.Response) -> None:
        """
        raise exception if HTTP status code is 4xx or 5xx

        :param response: a `Response` object
        """
        status_code = response.status_code
        if status_code >= 500:
            if status_code == 503:
                raise RpcServerNotAvailable(status_code, response.text)
            raise RpcServerException(status_code, response.text)
        if 400 <= status_code < 500:
            if status_code == 404:
                raise RpcResourceNotFound(status_code, response.text)
            if status_code == 400:
                raise RpcBadRequest(status_code, response.text)
            raise RpcClientException(status_code, response.text)

    @classmethod
    def call(cls, method: str, url: str, params=None, retry: bool = False, data=None, headers=None,
             timeout: float = DEFAULT_TIMEOUT) -> Dict:
        """call HTTP API. if server returns 4xx or 500 status code, raise exceptions.

        :param method: HTTP method. Support GET, POST or PUT.
        :param url: URL of the HTTP endpoint
        :param params: parameters when calling RPC
        :param retry: if set to True, timeouts are retried. only use it for idempotent calls
        :param data: json data along with the request
        :param headers: custom headers
        :param timeout: seconds to wait for the remote server
        """
        if method not in ('GET', 'POST', 'PUT'):
            raise NotImplementedError("Unsupported HTTP method {}".format(method))

        trial_total = RETRY_TRIALS if retry else 1
        trial = 0
        with requests.Session() as api_session:
            while trial < trial_total:
                try:
                    rpc._logger.debug('RPC {} {}'.format(method, url))
                    api_response = api_session.request(method, url, params=params, json=data, headers=headers,
                                                       timeout=timeout)
                except requests.exceptions.Timeout as e:
                    rpc._logger.warning('RPC {} {} timed out at trial {}: {}'.format(method, url, trial + 1, repr(e)))
                    trial += 1
                    continue
                except requests.exceptions.ConnectionError as e:
                    rpc._logger.warning('RPC {} {} cannot connect: {}'.format(method, url, repr(e)))
                    raise RpcServerNotAvailable('Cannot connect to {}'.format(url)) from e
                # bodies carry tokens and applicant PII, only the status is logged
                rpc._logger.debug('RPC {} {} returned {}'.format(method, url, api_response.status_code))
                cls._status_code_raise(api_response)
                try:
                    return api_response.json()
                except ValueError as e:
                    raise RpcUnexpectedResponse(api_response.status_code, api_response.text) from e
        raise RpcTimeout('Timeout when calling {}. Tried {} time(s).'.format(url, trial_total))
