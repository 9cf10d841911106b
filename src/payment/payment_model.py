from typing import Dict, Optional

from pydantic import BaseModel, Field


class Charge(BaseModel):
    """Gateway-side view of a charge"""
    charge_id: str
    status: str
    amount: Optional[int] = Field(default=None, description='Amount in minor currency units')
    currency: Optional[str] = None
    client_secret: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == 'succeeded'


def to_minor_units(amount: float, minor_units_per_major: int = 100) -> int:
    return int(round(amount * minor_units_per_major))
