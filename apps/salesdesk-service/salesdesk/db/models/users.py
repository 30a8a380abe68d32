from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint
from .base import Base, now_utc, new_user_id


class User(Base):
    __tablename__ = 'users'
    # Text key so ids issued by an external identity provider fit unchanged
    id = Column(String(64), primary_key=True, default=new_user_id)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    password = Column(Text, nullable=True)
    role = Column(String(32), nullable=False, default='agent')
    sector = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_users_organization_id', 'organization_id'),
        CheckConstraint("role in ('agent','manager','superadmin')", name='ck_users_role'),
    )
