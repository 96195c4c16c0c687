from models.base_model import Base, BaseModel
from sqlalchemy import Column, String

ROLE_ADMIN = "Admin"
ROLE_USER = "User"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(BaseModel, Base):
    __tablename__ = "users"

    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_USER)

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
