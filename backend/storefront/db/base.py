# backend/storefront/db/base.py
"""
Importa todos los modelos para que Base.metadata y las relaciones por nombre
("Profile", "Order", ...) queden registradas antes de usarse.
"""

from storefront.db.database import Base  # noqa: F401
from storefront.db.models.product_model import Product  # noqa: F401
from storefront.db.models.price_model import Price  # noqa: F401
from storefront.db.models.profile_model import Profile  # noqa: F401
from storefront.db.models.order_model import Order  # noqa: F401
from storefront.db.models.settings_model import CompanySettings  # noqa: F401
from storefront.db.models.payment_session_model import PaymentSession  # noqa: F401
