"""Models package - exports all SQLAlchemy models."""
# Actors
from marketplace.models.app_user import AppUser
from marketplace.models.admin_user import AdminUser
from marketplace.models.company import Company
from marketplace.models.company_payment_settings import CompanyPaymentSettings
from marketplace.models.partner import Partner

# Catalog
from marketplace.models.product import Product
from marketplace.models.product_variant import ProductVariant
from marketplace.models.animal import Animal
from marketplace.models.discount import Discount, DiscountScope, DiscountStatus

# Carts
from marketplace.models.cart_item import CartItem, AnimalCartItem, PartnerCartItem

# Orders
from marketplace.models.checkout import Checkout, OrderStatus
from marketplace.models.checkout_item import CheckoutItem
from marketplace.models.partner_order import PartnerOrder, PartnerOrderItem
from marketplace.models.profit_ledger import ProfitLedgerEntry

__all__ = [
    'AppUser', 'AdminUser', 'Company', 'CompanyPaymentSettings', 'Partner',
    'Product', 'ProductVariant', 'Animal', 'Discount', 'DiscountScope', 'DiscountStatus',
    'CartItem', 'AnimalCartItem', 'PartnerCartItem',
    'Checkout', 'OrderStatus', 'CheckoutItem', 'PartnerOrder', 'PartnerOrderItem',
    'ProfitLedgerEntry',
]
