from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base

class Order(Base):
    __tablename__ = "order"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(32), nullable=False, unique=True, index=True)  # TRV-YYYYMMDD-NNN
    customer_id = Column(Integer, ForeignKey("customer.id"), nullable=False, index=True)

    destination_slug = Column(String(100), nullable=False)
    destination_name = Column(String(255), nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # days
    plan_name = Column(String(100), nullable=False)
    bundle_name = Column(String(255), nullable=True)

    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="AUD")
    locale = Column(String(10), nullable=False, default="en-au")

    status = Column(String(50), nullable=False, default="pending", index=True)
    # e.g., pending, paid, refunded

    # Idempotency key for webhook deliveries
    stripe_session_id = Column(String(255), nullable=False, unique=True, index=True)
    stripe_payment_intent_id = Column(String(255), nullable=True, index=True)

    esim_iccid = Column(String(64), nullable=True)
    esim_smdp_address = Column(String(255), nullable=True)
    esim_matching_id = Column(String(255), nullable=True)
    esim_qr_code = Column(String(512), nullable=True)  # LPA activation string, never the image
    esim_provisioned_at = Column(DateTime(timezone=True), nullable=True)
    esim_status = Column(String(50), nullable=True)
    # None, ordered, failed

    confirmation_email_sent = Column(Boolean, nullable=False, default=False)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    customer = relationship("Customer", back_populates="orders")

    def __repr__(self):
        return f"<Order(id={self.id}, order_number='{self.order_number}', session='{self.stripe_session_id}', status='{self.status}')>"
