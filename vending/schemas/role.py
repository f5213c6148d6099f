from datetime import datetime
from typing import List, Optional

from vending.models.role import Privilege
from vending.schemas.common import CamelModel


class RoleResponse(CamelModel):
    id: str
    name: str
    privileges: List[Privilege]
    is_admin: bool = False
    date_created: datetime
    date_updated: Optional[datetime] = None
