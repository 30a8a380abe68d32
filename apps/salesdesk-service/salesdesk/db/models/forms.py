from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Index, JSON
from .base import Base, now_utc


class FormTemplate(Base):
    __tablename__ = 'form_templates'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    fields = Column(JSON, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_by_id = Column(String(64), ForeignKey('users.id'), nullable=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_form_templates_organization_id', 'organization_id'),
    )


class FormSubmission(Base):
    __tablename__ = 'form_submissions'
    id = Column(Integer, primary_key=True, autoincrement=True)
    form_template_id = Column(Integer, ForeignKey('form_templates.id'), nullable=True)
    data = Column(JSON, nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=True)
    status = Column(String(32), nullable=False, default='pending')  # pending|processed
    processed_by_id = Column(String(64), ForeignKey('users.id'), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    organization_id = Column(Integer, ForeignKey('organizations.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index('ix_form_submissions_form_template_id', 'form_template_id'),
        Index('ix_form_submissions_status', 'status'),
    )
