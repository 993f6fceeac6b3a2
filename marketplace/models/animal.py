"""Animal model - livestock listed for sale."""
from sqlalchemy import Column, BigInteger, String, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from marketplace.database import Base, BigIntPK


class Animal(Base):
    """Animal listed by a seller; bought through the animal cart at total_price."""

    __tablename__ = 'animal'

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    specie = Column(String(100), nullable=True)
    breed = Column(String(100), nullable=True)
    total_price = Column(Numeric(12, 2), nullable=False)
    country = Column(String(50), nullable=False, default='Pakistan', server_default='Pakistan')
    active = Column(Boolean, nullable=False, default=True)
    seller_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def is_orderable(self):
        return bool(self.active)

    def __repr__(self):
        return f"<Animal(id={self.id}, title='{self.title}', total_price={self.total_price})>"
