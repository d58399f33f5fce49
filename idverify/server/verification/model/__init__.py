from idverify.server.verification.model.applicant import Applicant
from idverify.server.verification.model.claim import Claim
from idverify.server.verification.model.provider import Provider
from idverify.server.verification.model.user_attribute import User, UserAttribute, UserNotFoundError

__all__ = ('Applicant', 'Claim', 'Provider', 'User', 'UserAttribute', 'UserNotFoundError')
