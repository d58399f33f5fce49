from typing import Optional

from sqlalchemy import Column, Integer, String, Text
from sqlalchemy.orm.exc import NoResultFound

from idverify.server.utils.db.sql import Base, db_session


class UserNotFoundError(LookupError):
    """用户在该租户下不存在"""


class User(Base):
    __tablename__ = 'users'

    user_id = Column(String(64), primary_key=True)
    tenant_id = Column(Integer, primary_key=True)

    def __repr__(self):
        return "<User(user_id='%s', tenant_id=%s)>" % (self.user_id, self.tenant_id)

    @classmethod
    def add_user(cls, user_id: str, tenant_id: int) -> "User":
        user = User(user_id=user_id, tenant_id=tenant_id)
        db_session.add(user)
        db_session.commit()
        return user

    @classmethod
    def exists(cls, user_id: str, tenant_id: int) -> bool:
        return db_session.query(cls). \
            filter(cls.user_id == user_id). \
            filter(cls.tenant_id == tenant_id).first() is not None


class UserAttribute(Base):
    """用户属性存储，claim uri 到属性值"""

    __tablename__ = 'user_attributes'

    user_id = Column(String(64), primary_key=True)
    tenant_id = Column(Integer, primary_key=True)
    claim_uri = Column(String(255), primary_key=True)
    value = Column(Text)

    @classmethod
    def set_value(cls, user_id: str, claim_uri: str, value: str, tenant_id: int) -> None:
        attribute = UserAttribute(user_id=user_id, tenant_id=tenant_id, claim_uri=claim_uri, value=value)
        db_session.merge(attribute)
        db_session.commit()

    @classmethod
    def get_value(cls, user_id: str, claim_uri: str, tenant_id: int) -> Optional[str]:
        """获取用户属性值。属性不存在返回None，用户不存在抛出 UserNotFoundError"""
        if not User.exists(user_id, tenant_id):
            raise UserNotFoundError(f"user {user_id} does not exist in tenant {tenant_id}")
        try:
            return db_session.query(cls). \
                filter(cls.user_id == user_id). \
                filter(cls.tenant_id == tenant_id). \
                filter(cls.claim_uri == claim_uri).one().value
        except NoResultFound:
            return None
