import logging
from typing import Optional

from sqlalchemy.orm import Session

from airline_booking.config import settings
from airline_booking.models import AppSetting

logger = logging.getLogger(__name__)

ROUND_TRIP_DISCOUNT_KEY = "round_trip_discount"

class AppSettingsService:
    """Read access to admin-managed application settings"""

    def __init__(self, db: Session):
        self.db = db

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        setting = self.db.query(AppSetting).filter(AppSetting.key == key).first()
        return setting.value if setting else default

    def get_round_trip_discount(self) -> int:
        """Round-trip discount percent, falling back to the configured default"""
        default = settings.ROUND_TRIP_DISCOUNT_DEFAULT
        raw_value = self.get_setting(ROUND_TRIP_DISCOUNT_KEY)
        if raw_value is None:
            return default

        try:
            discount = int(raw_value)
        except ValueError:
            logger.warning(f"Invalid {ROUND_TRIP_DISCOUNT_KEY} setting '{raw_value}', using {default}")
            return default

        if discount < 0 or discount > 100:
            logger.warning(f"Out of range {ROUND_TRIP_DISCOUNT_KEY} setting {discount}, using {default}")
            return default

        return discount
