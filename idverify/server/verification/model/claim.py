import datetime
import uuid
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, UniqueConstraint
from sqlalchemy.exc import SQLAlchemyError

from idverify.server.utils.db.sql import Base, db_session


class Claim(Base):
    """一个需要验证的用户属性及其验证 metadata

    `meta` is stored in the `metadata` column (the attribute name is reserved by SQLAlchemy). The JSON column does
    not track in-place changes, always assign a new dict.
    """

    __tablename__ = 'idv_claims'
    __table_args__ = (UniqueConstraint('user_id', 'claim_uri', 'provider_id', 'tenant_id', name='uq_idv_claim'),)

    claim_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False)
    provider_id = Column(String(36), nullable=False, index=True)
    claim_uri = Column(String(255), nullable=False)
    is_verified = Column(Boolean, nullable=False, default=False)
    meta = Column('metadata', JSON, nullable=False, default=dict)
    create_time = Column(DateTime, nullable=False, default=datetime.datetime.now)
    update_time = Column(DateTime, nullable=False, default=datetime.datetime.now)

    def __repr__(self):
        return "<Claim(user_id='%s', claim_uri='%s', is_verified=%s)>" % (self.user_id, self.claim_uri,
                                                                           self.is_verified)

    @classmethod
    def get_claims(cls, user_id: str, provider_id: str, tenant_id: int) -> List["Claim"]:
        return db_session.query(cls). \
            filter(cls.user_id == user_id). \
            filter(cls.provider_id == provider_id). \
            filter(cls.tenant_id == tenant_id). \
            order_by(cls.create_time).all()

    @classmethod
    def get_claims_by_metadata(cls, field: str, value: str, provider_id: str, tenant_id: int) -> List["Claim"]:
        """按 metadata 中的字符串字段查找 claim"""
        return db_session.query(cls). \
            filter(cls.provider_id == provider_id). \
            filter(cls.tenant_id == tenant_id). \
            filter(cls.meta[field].as_string() == value). \
            order_by(cls.create_time).all()

    @classmethod
    def get_claim(cls, user_id: str, claim_uri: str, provider_id: str, tenant_id: int) -> Optional["Claim"]:
        return db_session.query(cls). \
            filter(cls.user_id == user_id). \
            filter(cls.claim_uri == claim_uri). \
            filter(cls.provider_id == provider_id). \
            filter(cls.tenant_id == tenant_id).first()

    @classmethod
    def save(cls, user_id: str, claims: List["Claim"], tenant_id: int) -> None:
        """新增或更新一组 claim，在同一个事务中提交"""
        now = datetime.datetime.now()
        for claim in claims:
            if claim.user_id != user_id or claim.tenant_id != tenant_id:
                raise ValueError(f"claim {claim.claim_uri} does not belong to user {user_id} in tenant {tenant_id}")
            claim.update_time = now
            db_session.add(claim)
        cls._commit()

    @classmethod
    def update(cls, user_id: str, claim: "Claim", tenant_id: int) -> None:
        if claim.user_id != user_id or claim.tenant_id != tenant_id:
            raise ValueError(f"claim {claim.claim_uri} does not belong to user {user_id} in tenant {tenant_id}")
        claim.update_time = datetime.datetime.now()
        db_session.add(claim)
        cls._commit()

    @staticmethod
    def _commit() -> None:
        try:
            db_session.commit()
        except SQLAlchemyError:
            db_session.rollback()
            raise
