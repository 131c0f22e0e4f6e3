"""AppUser model - sales staff creating quotations."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quotedesk.database import Base, BigIdType


class UserRole(enum.Enum):
    """User role enum."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    SALES = "sales"


class AppUser(Base):
    """Application user. A user must belong to a branch to create quotations."""

    __tablename__ = 'app_user'

    id = Column(BigIdType, primary_key=True, autoincrement=True)
    username = Column(String(30), nullable=False, unique=True)
    full_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    mobile = Column(String(15), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.SALES.value)
    branch_id = Column(BigInteger, ForeignKey('branch.id'), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    branch = relationship('Branch')

    def __repr__(self):
        return f"<AppUser(id={self.id}, username='{self.username}', role='{self.role}')>"

    @property
    def is_admin(self):
        """Admins see every quotation, sales staff only their own."""
        return self.role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
