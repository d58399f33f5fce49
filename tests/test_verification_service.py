from unittest import mock

from idverify.rpc import RpcServerException, RpcTimeout
from idverify.server.utils.base_exceptions import InternalError, InvalidRequestException
from idverify.server.utils.db.sql import db_session
from idverify.server.verification import exceptions
from idverify.server.verification import service as verification_service
from idverify.server.verification.consts import METADATA_APPLICANT_ID, METADATA_SDK_TOKEN, \
    METADATA_WORKFLOW_RUN_ID, METADATA_WORKFLOW_STATUS, REQUIRED_CONFIG_KEYS
from idverify.server.verification.model import Applicant, Claim, UserAttribute, UserNotFoundError
from tests.fixtures import DOB, DatabaseTestCase, GIVEN_NAME, LAST_NAME, PROVIDER_CONFIG, TENANT_ID, USER_ID, \
    add_provider, add_user, make_request


class VerificationTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.provider = add_provider()
        add_user()

        patcher = mock.patch('idverify.server.verification.service.Onfido')
        self.onfido = patcher.start()
        self.addCleanup(patcher.stop)
        self.onfido.create_applicant.return_value = "applicant-1"
        self.onfido.create_workflow_run.return_value = "run-1"
        self.onfido.create_sdk_token.return_value = "sdk-token-1"
        self.onfido.get_workflow_run_status.return_value = "awaiting_input"

    def initiate(self, claims=(GIVEN_NAME, LAST_NAME), user_id=USER_ID):
        request = make_request(self.provider.provider_id, "INITIATED", claims=claims)
        return verification_service.verify(user_id, request, TENANT_ID)

    def complete(self, workflow_run_id="run-1"):
        request = make_request(self.provider.provider_id, "COMPLETED", workflow_run_id=workflow_run_id)
        return verification_service.verify(USER_ID, request, TENANT_ID)

    def reinitiate(self, workflow_run_id="run-1"):
        request = make_request(self.provider.provider_id, "REINITIATED", workflow_run_id=workflow_run_id)
        return verification_service.verify(USER_ID, request, TENANT_ID)

    def persisted_claims(self):
        db_session.expire_all()
        return Claim.get_claims(USER_ID, self.provider.provider_id, TENANT_ID)


class FlowDispatchTest(VerificationTestCase):
    def test_unknown_flow_status_fails_before_any_collaborator_call(self):
        for status in ("STARTED", "initiate", "resume", "DONE"):
            with mock.patch('idverify.server.verification.service.Provider') as provider_model:
                with self.assertRaises(exceptions.InvalidFlowStatus) as ctx:
                    verification_service.verify(USER_ID, make_request(self.provider.provider_id, status,
                                                                      claims=(GIVEN_NAME,)), TENANT_ID)
                provider_model.get_by_id.assert_not_called()
            self.assertIsInstance(ctx.exception, InvalidRequestException)
        self.assertEqual(self.onfido.mock_calls, [])

    def test_missing_or_blank_flow_status(self):
        with self.assertRaises(exceptions.FlowStatusNotFound):
            verification_service.verify(USER_ID, make_request(self.provider.provider_id), TENANT_ID)
        with self.assertRaises(exceptions.FlowStatusNotFound):
            verification_service.verify(USER_ID, make_request(self.provider.provider_id, "  "), TENANT_ID)

    def test_flow_status_is_case_insensitive(self):
        result = verification_service.verify(USER_ID, make_request(self.provider.provider_id, "initiated",
                                                                   claims=(GIVEN_NAME,)), TENANT_ID)
        self.assertEqual(len(result), 1)

    def test_workflow_run_id_required_for_complete_and_resume(self):
        for status in ("COMPLETED", "REINITIATED"):
            with self.assertRaises(exceptions.WorkflowRunIdNotFound):
                verification_service.verify(USER_ID, make_request(self.provider.provider_id, status), TENANT_ID)


class ProviderValidationTest(VerificationTestCase):
    def test_unknown_provider(self):
        for status in ("INITIATED", "COMPLETED", "REINITIATED"):
            with self.assertRaises(exceptions.ProviderInvalidOrDisabled) as ctx:
                verification_service.verify(USER_ID, make_request("no-such-provider", status, "run-1", (GIVEN_NAME,)),
                                            TENANT_ID)
            self.assertIsInstance(ctx.exception, InvalidRequestException)

    def test_disabled_provider(self):
        disabled = add_provider(enabled=False)
        for status in ("INITIATED", "COMPLETED", "REINITIATED"):
            with self.assertRaises(exceptions.ProviderInvalidOrDisabled):
                verification_service.verify(USER_ID, make_request(disabled.provider_id, status, "run-1", (GIVEN_NAME,)),
                                            TENANT_ID)
        self.assertEqual(self.onfido.mock_calls, [])

    def test_provider_of_another_tenant(self):
        with self.assertRaises(exceptions.ProviderInvalidOrDisabled):
            verification_service.verify(USER_ID, make_request(self.provider.provider_id, "INITIATED",
                                                              claims=(GIVEN_NAME,)), TENANT_ID + 1)

    def test_missing_or_blank_config_keys(self):
        for key in REQUIRED_CONFIG_KEYS:
            for broken in ({k: v for k, v in PROVIDER_CONFIG.items() if k != key},
                           dict(PROVIDER_CONFIG, **{key: "   "})):
                provider = add_provider(config=broken)
                with self.assertRaises(exceptions.ProviderConfigIncomplete) as ctx:
                    verification_service.verify(USER_ID, make_request(provider.provider_id, "INITIATED",
                                                                      claims=(GIVEN_NAME,)), TENANT_ID)
                self.assertIn(key, ctx.exception.status_message)
                self.assertIsInstance(ctx.exception, InvalidRequestException)

    def test_empty_config(self):
        provider = add_provider(config={})
        with self.assertRaises(exceptions.ProviderConfigIncomplete):
            verification_service.verify(USER_ID, make_request(provider.provider_id, "COMPLETED", "run-1"), TENANT_ID)


class InitiateTest(VerificationTestCase):
    def test_initiate_creates_applicant_workflow_run_and_token(self):
        result = self.initiate()

        self.onfido.create_applicant.assert_called_once_with(PROVIDER_CONFIG, {"first_name": "Jane",
                                                                               "last_name" : "Doe"})
        self.onfido.update_applicant.assert_not_called()
        self.onfido.create_workflow_run.assert_called_once_with(PROVIDER_CONFIG, "workflow-template-1",
                                                                "applicant-1")
        self.onfido.create_sdk_token.assert_called_once_with(PROVIDER_CONFIG, "applicant-1")

        self.assertEqual({claim.claim_uri for claim in result}, {GIVEN_NAME, LAST_NAME})
        for claim in result:
            self.assertFalse(claim.is_verified)
            self.assertEqual(claim.user_id, USER_ID)
            self.assertEqual(claim.provider_id, self.provider.provider_id)
            self.assertEqual(claim.metadata[METADATA_APPLICANT_ID], "applicant-1")
            self.assertEqual(claim.metadata[METADATA_WORKFLOW_RUN_ID], "run-1")
            self.assertEqual(claim.metadata[METADATA_WORKFLOW_STATUS], "awaiting_input")
            self.assertEqual(claim.sdk_token, "sdk-token-1")

    def test_token_is_not_persisted(self):
        self.initiate()

        persisted = self.persisted_claims()
        self.assertEqual(len(persisted), 2)
        for claim in persisted:
            self.assertEqual(claim.meta[METADATA_APPLICANT_ID], "applicant-1")
            self.assertEqual(claim.meta[METADATA_WORKFLOW_RUN_ID], "run-1")
            self.assertEqual(claim.meta[METADATA_WORKFLOW_STATUS], "awaiting_input")
            self.assertNotIn(METADATA_SDK_TOKEN, claim.meta)

    def test_second_initiation_is_rejected(self):
        self.initiate()
        with self.assertRaises(exceptions.VerificationAlreadyInitiated) as ctx:
            self.initiate()
        self.assertIsInstance(ctx.exception, InvalidRequestException)
        self.assertEqual(self.onfido.create_applicant.call_count, 1)
        self.assertEqual(self.onfido.create_workflow_run.call_count, 1)

    def test_new_claim_reuses_existing_applicant(self):
        self.initiate(claims=(GIVEN_NAME,))
        UserAttribute.set_value(USER_ID, DOB, "1990-01-01", TENANT_ID)
        self.onfido.create_workflow_run.return_value = "run-2"

        result = self.initiate(claims=(GIVEN_NAME, DOB))

        self.assertEqual([claim.claim_uri for claim in result], [DOB])
        self.onfido.update_applicant.assert_called_once_with(PROVIDER_CONFIG, {"dob": "1990-01-01"}, "applicant-1")
        self.assertEqual(self.onfido.create_applicant.call_count, 1)
        self.assertEqual(result[0].metadata[METADATA_WORKFLOW_RUN_ID], "run-2")

    def test_duplicate_claims_in_request_are_submitted_once(self):
        result = self.initiate(claims=(GIVEN_NAME, GIVEN_NAME))
        self.assertEqual(len(result), 1)
        self.onfido.create_applicant.assert_called_once_with(PROVIDER_CONFIG, {"first_name": "Jane"})

    def test_no_claims(self):
        with self.assertRaises(exceptions.ClaimsNotProvided):
            self.initiate(claims=())

    def test_blank_claim_value(self):
        UserAttribute.set_value(USER_ID, DOB, "  ", TENANT_ID)
        with self.assertRaises(exceptions.ClaimValueNotExist) as ctx:
            self.initiate(claims=(GIVEN_NAME, DOB))
        self.assertIn(DOB, ctx.exception.status_message)
        self.assertEqual(self.onfido.mock_calls, [])
        self.assertEqual(self.persisted_claims(), [])

    def test_missing_claim_value(self):
        with self.assertRaises(exceptions.ClaimValueNotExist):
            self.initiate(claims=(DOB,))

    def test_unmapped_claim_is_a_server_error(self):
        UserAttribute.set_value(USER_ID, "http://wso2.org/claims/country", "LK", TENANT_ID)
        with self.assertRaises(exceptions.ClaimMappingRetrievalFailed) as ctx:
            self.initiate(claims=("http://wso2.org/claims/country",))
        self.assertIsInstance(ctx.exception, InternalError)

    def test_unknown_user_is_a_server_error(self):
        with self.assertRaises(exceptions.ClaimMappingRetrievalFailed) as ctx:
            self.initiate(user_id="ghost")
        self.assertIsInstance(ctx.exception, InternalError)
        self.assertIsInstance(ctx.exception.__cause__, UserNotFoundError)

    def test_remote_failure_is_wrapped_and_applicant_is_reused_on_retry(self):
        self.onfido.create_workflow_run.side_effect = RpcServerException(500, "boom")

        with self.assertRaises(exceptions.InitiationFailed) as ctx:
            self.initiate()
        self.assertIsInstance(ctx.exception, InternalError)
        self.assertIn(USER_ID, ctx.exception.status_message)
        self.assertIsInstance(ctx.exception.__cause__, RpcServerException)
        self.assertEqual(self.persisted_claims(), [])
        self.assertEqual(Applicant.find(USER_ID, self.provider.provider_id, TENANT_ID), "applicant-1")

        self.onfido.create_workflow_run.side_effect = None
        result = self.initiate()

        self.assertEqual(self.onfido.create_applicant.call_count, 1)
        self.onfido.update_applicant.assert_called_once_with(PROVIDER_CONFIG, {"first_name": "Jane",
                                                                               "last_name" : "Doe"}, "applicant-1")
        self.assertEqual({claim.metadata[METADATA_APPLICANT_ID] for claim in result}, {"applicant-1"})

    def test_token_failure_is_wrapped(self):
        self.onfido.create_sdk_token.side_effect = RpcTimeout("timeout")
        with self.assertRaises(exceptions.InitiationFailed):
            self.initiate()
        self.assertEqual(self.persisted_claims(), [])


class CompleteTest(VerificationTestCase):
    def test_no_matching_claims(self):
        with self.assertRaises(exceptions.ClaimsNotFoundForWorkflowRun) as ctx:
            self.complete("unknown-run")
        self.assertIsInstance(ctx.exception, InvalidRequestException)

    def test_round_trip_keeps_awaiting_input(self):
        initiated = self.initiate()
        completed = self.complete(initiated[0].metadata[METADATA_WORKFLOW_RUN_ID])

        self.assertEqual({c.claim_id for c in completed}, {c.claim_id for c in initiated})
        for claim in completed:
            self.assertEqual(claim.metadata[METADATA_WORKFLOW_STATUS], "awaiting_input")
            self.assertNotIn(METADATA_SDK_TOKEN, claim.metadata)

    def test_non_terminal_status_is_written_as_is(self):
        self.initiate()
        self.onfido.get_workflow_run_status.return_value = "awaiting_client_input"
        self.complete()
        for claim in self.persisted_claims():
            self.assertEqual(claim.meta[METADATA_WORKFLOW_STATUS], "awaiting_client_input")

    def test_terminal_status_is_persisted_as_processing(self):
        self.initiate()
        for status in ("approved", "declined", "review", "abandoned", "error"):
            self.onfido.get_workflow_run_status.return_value = status
            result = self.complete()
            for claim in result:
                self.assertEqual(claim.metadata[METADATA_WORKFLOW_STATUS], "processing")
            for claim in self.persisted_claims():
                self.assertEqual(claim.meta[METADATA_WORKFLOW_STATUS], "processing")

    def test_verified_claims_are_left_untouched(self):
        self.initiate()
        verified = Claim.get_claim(USER_ID, GIVEN_NAME, self.provider.provider_id, TENANT_ID)
        verified.is_verified = True
        Claim.update(USER_ID, verified, TENANT_ID)

        self.onfido.get_workflow_run_status.return_value = "processing"
        self.complete()

        claims = {claim.claim_uri: claim for claim in self.persisted_claims()}
        self.assertEqual(claims[GIVEN_NAME].meta[METADATA_WORKFLOW_STATUS], "awaiting_input")
        self.assertEqual(claims[LAST_NAME].meta[METADATA_WORKFLOW_STATUS], "processing")

    def test_remote_failure(self):
        self.initiate()
        self.onfido.get_workflow_run_status.side_effect = RpcServerException(502, "bad gateway")
        with self.assertRaises(exceptions.WorkflowStatusRetrievalFailed) as ctx:
            self.complete()
        self.assertIsInstance(ctx.exception, InternalError)

    def test_unknown_remote_status(self):
        self.initiate()
        self.onfido.get_workflow_run_status.return_value = "teleported"
        with self.assertRaises(exceptions.WorkflowStatusRetrievalFailed):
            self.complete()
        for claim in self.persisted_claims():
            self.assertEqual(claim.meta[METADATA_WORKFLOW_STATUS], "awaiting_input")

    def test_claims_of_other_users_are_not_matched(self):
        add_user("someone-else")
        self.initiate(user_id="someone-else")
        with self.assertRaises(exceptions.ClaimsNotFoundForWorkflowRun):
            self.complete()


class ReinitiateTest(VerificationTestCase):
    def test_reissues_token_for_awaiting_input(self):
        initiated = self.initiate()
        self.onfido.create_sdk_token.return_value = "sdk-token-2"

        result = self.reinitiate()

        self.onfido.create_sdk_token.assert_called_with(PROVIDER_CONFIG, "applicant-1")
        self.assertEqual({c.claim_id for c in result}, {c.claim_id for c in initiated})
        for claim in result:
            self.assertEqual(claim.sdk_token, "sdk-token-2")
            self.assertEqual(claim.metadata[METADATA_APPLICANT_ID], "applicant-1")
            self.assertEqual(claim.metadata[METADATA_WORKFLOW_RUN_ID], "run-1")
        for claim in self.persisted_claims():
            self.assertNotIn(METADATA_SDK_TOKEN, claim.meta)

    def test_not_allowed_outside_awaiting_input(self):
        self.initiate()
        self.onfido.get_workflow_run_status.return_value = "processing"
        self.complete()

        with self.assertRaises(exceptions.ReinitiationNotAllowed) as ctx:
            self.reinitiate()
        self.assertIsInstance(ctx.exception, InvalidRequestException)
        self.assertIn("not allowed", ctx.exception.status_message)

    def test_no_matching_claims(self):
        with self.assertRaises(exceptions.ClaimsNotFoundForWorkflowRun):
            self.reinitiate("unknown-run")

    def test_missing_applicant_id(self):
        self.initiate()
        for claim in Claim.get_claims(USER_ID, self.provider.provider_id, TENANT_ID):
            claim.meta = {k: v for k, v in claim.meta.items() if k != METADATA_APPLICANT_ID}
            Claim.update(USER_ID, claim, TENANT_ID)

        with self.assertRaises(exceptions.ApplicantIdNotFound) as ctx:
            self.reinitiate()
        self.assertIsInstance(ctx.exception, InternalError)

    def test_remote_failure(self):
        self.initiate()
        self.onfido.create_sdk_token.side_effect = RpcTimeout("timeout")
        with self.assertRaises(exceptions.ReinitiationFailed) as ctx:
            self.reinitiate()
        self.assertIsInstance(ctx.exception.__cause__, RpcTimeout)


class ClaimStoreTest(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.provider_id = add_provider().provider_id
        self.other_provider_id = add_provider().provider_id

    def add_claim(self, claim_uri, meta, provider_id=None, user_id=USER_ID):
        Claim.save(user_id, [Claim(user_id=user_id, tenant_id=TENANT_ID, provider_id=provider_id or self.provider_id,
                                   claim_uri=claim_uri, is_verified=False, meta=meta)], TENANT_ID)

    def test_metadata_lookup_matches_in_the_query(self):
        self.add_claim(GIVEN_NAME, {METADATA_WORKFLOW_RUN_ID: "run-1", METADATA_APPLICANT_ID: "applicant-1"})
        self.add_claim(LAST_NAME, {METADATA_WORKFLOW_RUN_ID: "run-2"})
        self.add_claim(DOB, {})
        self.add_claim(GIVEN_NAME, {METADATA_WORKFLOW_RUN_ID: "run-1"}, provider_id=self.other_provider_id)
        self.add_claim(GIVEN_NAME, {METADATA_WORKFLOW_RUN_ID: "run-1"}, user_id="someone-else")

        claims = Claim.get_claims_by_metadata(METADATA_WORKFLOW_RUN_ID, "run-1", self.provider_id, TENANT_ID)

        self.assertEqual(sorted((c.user_id, c.claim_uri) for c in claims),
                         sorted([(USER_ID, GIVEN_NAME), ("someone-else", GIVEN_NAME)]))
        self.assertEqual(Claim.get_claims_by_metadata(METADATA_WORKFLOW_RUN_ID, "run-3", self.provider_id, TENANT_ID),
                         [])
        self.assertEqual(Claim.get_claims_by_metadata(METADATA_WORKFLOW_RUN_ID, "run-1", self.provider_id,
                                                      TENANT_ID + 1), [])
