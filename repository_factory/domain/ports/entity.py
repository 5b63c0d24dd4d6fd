from datetime import datetime
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class EntityContract(Protocol):
    """
    Minimal shape of a storable record.
    Identity plus timestamps; no behaviour.
    """

    id: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]
