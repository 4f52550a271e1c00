"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and Alembic's env.py) can import
Base and discover all tables via a single import:

    from offerdesk.models import Base
"""

from offerdesk.db.base import Base
from offerdesk.models.allowlist import AdminAllowedEmail
from offerdesk.models.client import Client
from offerdesk.models.offer import Offer, OfferStatus
from offerdesk.models.template import Template
from offerdesk.models.user import User

__all__ = [
    "Base",
    "AdminAllowedEmail",
    "Client",
    "Offer",
    "OfferStatus",
    "Template",
    "User",
]
