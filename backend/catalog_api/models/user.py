from sqlalchemy import Column, Integer, String

from catalog_api.core.database import Base

ROLE_MANAGER = "manager"  # read + write
ROLE_VIEWER = "viewer"    # read only


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    username = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)

    role = Column(String(20), nullable=False, default=ROLE_VIEWER)

    password_hash = Column(String(255), nullable=False)
