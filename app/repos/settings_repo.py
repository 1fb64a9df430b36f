# app/repos/settings_repo.py
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.data.models.app_settings import AppSettingsModel
from app.utils.money import round2


@dataclass(frozen=True)
class PricingSettings:
    tax_price: Decimal
    shipping_price: Decimal


class SettingsRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_pricing_settings(self) -> PricingSettings:
        row = self.db.execute(select(AppSettingsModel).limit(1)).scalar_one_or_none()
        if not row:
            return PricingSettings(tax_price=round2(0), shipping_price=round2(0))
        return PricingSettings(
            tax_price=round2(row.tax_price),
            shipping_price=round2(row.shipping_price),
        )
