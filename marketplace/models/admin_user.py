"""AdminUser model - global platform administrators."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class AdminUser(Base):
    """AdminUser model - global platform administrators.

    Admins are not tied to a company or partner; they manage orders,
    discounts and the catalog across the whole marketplace.
    """

    __tablename__ = 'admin_users'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_seen_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<AdminUser(id={self.id}, email='{self.email}')>"
