from storefront.models.users import User
from storefront.models.product import Product, ProductVariant, ProductCategory
from storefront.models.cart import Cart, CartItem
from storefront.models.order import (
    Order, OrderItem, OrderStatusHistory, OrderSequence,
    OrderStatus, PaymentStatus, PaymentMethod,
)
from storefront.models.log import Log
from storefront.models.reconciliation import StockReconciliation
