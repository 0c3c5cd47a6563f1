from sqlalchemy import Column, String, Boolean, JSON
from app.db.session import Base


class Admin(Base):
    __tablename__ = "admin"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)

    role = Column(String, default="admin", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    permissions = Column(JSON, default=list)
