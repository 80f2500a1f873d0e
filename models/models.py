import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.dialects.postgresql import INET, JSONB
from sqlalchemy.orm import relationship

from models.session import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Users(Base):
    __tablename__ = 'users'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    forms = relationship('Form', back_populates='owner', passive_deletes=True)


class Form(Base):
    __tablename__ = "forms"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    # public locator for submissions; never changes after creation
    secret = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    owner = relationship("Users", back_populates="forms")
    submissions = relationship("Submission", back_populates="form", passive_deletes=True)


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    form_id = Column(Uuid, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)  # schemaless field map
    ip_address = Column(String(45).with_variant(INET(), "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    form = relationship("Form", back_populates="submissions")
