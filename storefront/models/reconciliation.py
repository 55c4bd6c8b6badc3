# storefront/models/reconciliation.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from storefront.database import Base

# Inventory decrement that could not be applied when an order was confirmed.
# The order is kept (payment already captured); an admin resolves the entry.
class StockReconciliation(Base):
    __tablename__ = "stock_reconciliations"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    variant_name = Column(String, nullable=True)
    variant_value = Column(String, nullable=True)
    requested = Column(Integer, nullable=False)
    available = Column(Integer, nullable=False)

    resolved = Column(Boolean, nullable=False, default=False, index=True)
    resolution_notes = Column(String, nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
