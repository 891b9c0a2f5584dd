from sqlalchemy import Column, Integer, String, DateTime, Numeric, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base_class import Base

class Destination(Base):
    __tablename__ = "destination"
    __table_args__ = (UniqueConstraint("slug", "locale", name="uq_destination_slug_locale"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    slug = Column(String(100), nullable=False, index=True)
    locale = Column(String(10), nullable=False)
    name = Column(String(255), nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Destination(slug='{self.slug}', locale='{self.locale}', name='{self.name}')>"


class Plan(Base):
    __tablename__ = "plan"
    __table_args__ = (UniqueConstraint("destination_slug", "locale", name="uq_plan_destination_locale"),)

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    destination_slug = Column(String(100), nullable=False, index=True)
    locale = Column(String(10), nullable=False)
    currency = Column(String(3), nullable=False, default="AUD")

    price_5day = Column(Numeric(10, 2), nullable=True)
    price_7day = Column(Numeric(10, 2), nullable=True)
    price_15day = Column(Numeric(10, 2), nullable=True)

    # Wholesale eSIM Go bundle per duration, e.g. "esim_UL_5D_JP_V2"
    bundle_5day = Column(String(255), nullable=True)
    bundle_7day = Column(String(255), nullable=True)
    bundle_15day = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    def price_for(self, duration: int):
        return getattr(self, f"price_{duration}day", None)

    def bundle_for(self, duration: int):
        return getattr(self, f"bundle_{duration}day", None)

    def __repr__(self):
        return f"<Plan(destination_slug='{self.destination_slug}', locale='{self.locale}')>"
