# Importing the models registers their tables on Base.metadata.
from vending.models.access import AccessClient, AccessToken  # noqa: F401
from vending.models.product import Product  # noqa: F401
from vending.models.purchase import Purchase, PurchaseStatus  # noqa: F401
from vending.models.role import Privilege, Role  # noqa: F401
from vending.models.user import User  # noqa: F401
