import copy
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from idverify.server.utils.jsonable import JSONSerializable
from idverify.server.verification.consts import METADATA_SDK_TOKEN


@dataclass
class VerificationProperty:
    key: str
    value: str


@dataclass
class RequestedClaim:
    claim_uri: str


@dataclass
class VerificationRequest:
    """一次验证请求，只在一次 verify 调用期间存在"""
    provider_id: str
    properties: List[VerificationProperty] = field(default_factory=list)
    claims: List[RequestedClaim] = field(default_factory=list)

    def get_property(self, name: str) -> Optional[str]:
        """返回第一个名称匹配且非空白的属性值，没有则返回 None"""
        for prop in self.properties:
            if prop.key == name and prop.value is not None and str(prop.value).strip():
                return str(prop.value)
        return None

    @classmethod
    def make(cls, dct: Dict) -> "VerificationRequest":
        """build a request from a JSON body. raises ValueError on malformed input"""
        if not isinstance(dct, dict):
            raise ValueError("request body must be a JSON object")
        provider_id = dct.get("provider_id")
        if not _is_text(provider_id):
            raise ValueError("provider_id must be a non-blank string")
        try:
            properties = [VerificationProperty(key=p["key"], value=p.get("value"))
                          for p in dct.get("properties") or []]
            claims = [RequestedClaim(claim_uri=c["claim_uri"]) for c in dct.get("claims") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed properties or claims: {repr(e)}") from e
        for prop in properties:
            if not _is_text(prop.key):
                raise ValueError("property key must be a non-blank string")
            if prop.value is not None and not isinstance(prop.value, str):
                raise ValueError(f"value of property {prop.key} must be a string")
        for claim in claims:
            if not _is_text(claim.claim_uri):
                raise ValueError("claim_uri must be a non-blank string")
        return cls(provider_id=provider_id, properties=properties, claims=claims)


def _is_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


@dataclass
class ClaimResult(JSONSerializable):
    """返回给调用方的 claim。与持久化的 Claim 是两个不同的类型，SDK token 只会出现在这里"""
    claim_id: str
    user_id: str
    provider_id: str
    claim_uri: str
    is_verified: bool
    metadata: Dict = field(default_factory=dict)

    @property
    def sdk_token(self) -> Optional[str]:
        return self.metadata.get(METADATA_SDK_TOKEN)

    @classmethod
    def from_claim(cls, claim, sdk_token: str = None) -> "ClaimResult":
        metadata = copy.deepcopy(claim.meta) if claim.meta else {}
        if sdk_token:
            metadata[METADATA_SDK_TOKEN] = sdk_token
        return cls(claim_id=claim.claim_id,
                   user_id=claim.user_id,
                   provider_id=claim.provider_id,
                   claim_uri=claim.claim_uri,
                   is_verified=bool(claim.is_verified),
                   metadata=metadata)

    def __json_encode__(self) -> Dict:
        return {'id'        : self.claim_id,
                'userId'    : self.user_id,
                'idvpId'    : self.provider_id,
                'uri'       : self.claim_uri,
                'isVerified': self.is_verified,
                'metadata'  : self.metadata}


__all__ = ('VerificationProperty', 'RequestedClaim', 'VerificationRequest', 'ClaimResult')
