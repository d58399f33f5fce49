import unittest
from typing import Dict, Iterable

from idverify.server.utils.db.sql import create_table, db_session, drop_table
from idverify.server.verification.consts import PROPERTY_STATUS, PROPERTY_WORKFLOW_RUN_ID
from idverify.server.verification.entity import RequestedClaim, VerificationProperty, VerificationRequest
from idverify.server.verification.model import Provider, User, UserAttribute

TENANT_ID = 1
USER_ID = "8c4f9c1e-user"

GIVEN_NAME = "http://wso2.org/claims/givenname"
LAST_NAME = "http://wso2.org/claims/lastname"
DOB = "http://wso2.org/claims/dob"

PROVIDER_CONFIG = {"token"        : "api_sandbox.token",
                   "base_url"     : "https://api.eu.onfido.com/v3.6",
                   "webhook_token": "webhook-secret",
                   "workflow_id"  : "workflow-template-1"}
CLAIM_MAPPINGS = {GIVEN_NAME: "first_name",
                  LAST_NAME : "last_name",
                  DOB       : "dob"}


class DatabaseTestCase(unittest.TestCase):
    """每个用例使用一个全新的内存数据库"""

    def setUp(self):
        create_table()

    def tearDown(self):
        db_session.remove()
        drop_table()


def add_provider(enabled: bool = True, config: Dict[str, str] = None, tenant_id: int = TENANT_ID) -> Provider:
    return Provider.new(tenant_id=tenant_id,
                        name="Onfido",
                        config=PROVIDER_CONFIG if config is None else config,
                        claim_mappings=CLAIM_MAPPINGS,
                        enabled=enabled)


def add_user(user_id: str = USER_ID, attributes: Dict[str, str] = None, tenant_id: int = TENANT_ID) -> None:
    User.add_user(user_id, tenant_id)
    if attributes is None:
        attributes = {GIVEN_NAME: "Jane", LAST_NAME: "Doe"}
    for claim_uri, value in attributes.items():
        UserAttribute.set_value(user_id, claim_uri, value, tenant_id)


def make_request(provider_id: str, status: str = None, workflow_run_id: str = None,
                 claims: Iterable[str] = ()) -> VerificationRequest:
    properties = []
    if status is not None:
        properties.append(VerificationProperty(key=PROPERTY_STATUS, value=status))
    if workflow_run_id is not None:
        properties.append(VerificationProperty(key=PROPERTY_WORKFLOW_RUN_ID, value=workflow_run_id))
    return VerificationRequest(provider_id=provider_id,
                               properties=properties,
                               claims=[RequestedClaim(claim_uri=uri) for uri in claims])
