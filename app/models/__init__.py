"""Database models — re-exports all models.

Import from here:  from app.models import Party, Quotation, ...
Or from submodules: from app.models.parties import Party
"""

from .base import Base  # noqa: F401

# Parties & follow-ups
from .parties import FollowUp, Party  # noqa: F401

# Quotations
from .quotes import QUOTATION_STATUSES, Quotation  # noqa: F401

# Catalog
from .catalog import Brand, Category, ProductModel  # noqa: F401
