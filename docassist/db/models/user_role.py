from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from docassist.core.rbac import AppRole
from docassist.db.base import Base
import uuid


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(AppRole, name="app_role"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
