import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String

from idverify.server.utils.db.sql import Base, db_session


class Applicant(Base):
    """远程 applicant 的创建记录

    The row is committed right after the remote applicant is created, before the workflow run is requested. If the
    rest of the initiation fails, the next attempt finds the applicant here instead of creating a duplicate.
    """

    __tablename__ = 'idv_applicants'

    user_id = Column(String(64), primary_key=True)
    provider_id = Column(String(36), primary_key=True)
    tenant_id = Column(Integer, primary_key=True)
    applicant_id = Column(String(64), nullable=False)
    create_time = Column(DateTime, nullable=False, default=datetime.datetime.now)

    def __repr__(self):
        return "<Applicant(user_id='%s', applicant_id='%s')>" % (self.user_id, self.applicant_id)

    @classmethod
    def remember(cls, user_id: str, provider_id: str, tenant_id: int, applicant_id: str) -> None:
        record = Applicant(user_id=user_id, provider_id=provider_id, tenant_id=tenant_id, applicant_id=applicant_id,
                           create_time=datetime.datetime.now())
        db_session.merge(record)
        db_session.commit()

    @classmethod
    def find(cls, user_id: str, provider_id: str, tenant_id: int) -> Optional[str]:
        record = db_session.query(cls). \
            filter(cls.user_id == user_id). \
            filter(cls.provider_id == provider_id). \
            filter(cls.tenant_id == tenant_id).first()
        return record.applicant_id if record else None
