import uuid
from typing import Dict, Optional

from sqlalchemy import Boolean, Column, Integer, JSON, String
from sqlalchemy.orm.exc import NoResultFound

from idverify.server.utils.db.sql import Base, db_session


class Provider(Base):
    """已配置的远程身份验证 provider。由 provider 管理模块维护，验证流程只读"""

    __tablename__ = 'idv_providers'

    provider_id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    config = Column(JSON, nullable=False, default=dict)
    claim_mappings = Column(JSON, nullable=False, default=dict)  # local claim uri -> provider claim name

    def __repr__(self):
        return "<Provider(provider_id='%s', name='%s')>" % (self.provider_id, self.name)

    @classmethod
    def new(cls, tenant_id: int, name: str, config: Dict[str, str], claim_mappings: Dict[str, str],
            enabled: bool = True, provider_id: str = None) -> "Provider":
        provider = Provider(provider_id=provider_id or str(uuid.uuid4()),
                            tenant_id=tenant_id,
                            name=name,
                            enabled=enabled,
                            config=dict(config),
                            claim_mappings=dict(claim_mappings))
        db_session.add(provider)
        db_session.commit()
        return provider

    @classmethod
    def get_by_id(cls, provider_id: str, tenant_id: int) -> Optional["Provider"]:
        """通过ID查找 provider，如果没找到返回None"""
        try:
            return db_session.query(cls). \
                filter(cls.provider_id == provider_id). \
                filter(cls.tenant_id == tenant_id).one()
        except NoResultFound:
            return None
