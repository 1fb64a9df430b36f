from sqlalchemy import Column, Integer, Numeric

from app.data.database import Base


class AppSettingsModel(Base):
    """Global tax/shipping, one row. Read on every pricing pass, never cached."""

    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    tax_price = Column(Numeric(10, 2), nullable=True)
    shipping_price = Column(Numeric(10, 2), nullable=True)
