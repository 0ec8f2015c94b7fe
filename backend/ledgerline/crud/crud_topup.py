"""CRUD operations for the Topup model."""

from ledgerline.crud._base import CRUDBase
from ledgerline.models.topup import Topup
from ledgerline.schemas.topup import TopupCreate


class CRUDTopup(CRUDBase[Topup, TopupCreate]):
    """CRUD operations for the Topup model."""


topup = CRUDTopup(Topup)
