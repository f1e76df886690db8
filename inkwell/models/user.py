
from sqlalchemy import Boolean, Column, Integer, String, Text, DateTime, func
from inkwell.db.session import Base

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    # null for demo accounts and authors created without credentials
    password_hash = Column(String(255), nullable=True)
    role = Column(String(50), nullable=False, default="author")
    is_active = Column(Boolean, nullable=False, default=True)
    bio = Column(Text, nullable=True)
    profile_image = Column(Text, nullable=True)
    cover_image = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
