from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from .base import Base, now_utc


class Client(Base):
    __tablename__ = 'clients'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    cpf = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    birth_date = Column(Text, nullable=True)
    company = Column(Text, nullable=True)
    contact = Column(Text, nullable=True)
    convenio_id = Column(Integer, ForeignKey('convenios.id'), nullable=True)
    created_by_id = Column(String(64), ForeignKey('users.id'), nullable=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('ix_clients_organization_id', 'organization_id'),
        Index('ix_clients_created_by_id', 'created_by_id'),
    )


class Proposal(Base):
    __tablename__ = 'proposals'
    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=True)
    convenio_id = Column(Integer, ForeignKey('convenios.id'), nullable=True)
    bank_id = Column(Integer, ForeignKey('banks.id'), nullable=True)
    value = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default='negotiating')  # negotiating|accepted|under_review|declined
    created_by_id = Column(String(64), ForeignKey('users.id'), nullable=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    __table_args__ = (
        Index('ix_proposals_organization_id', 'organization_id'),
        Index('ix_proposals_created_by_id', 'created_by_id'),
        Index('ix_proposals_client_id', 'client_id'),
        Index('ix_proposals_status', 'status'),
    )
