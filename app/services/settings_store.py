"""
GlucoTrack - Dashboard Settings Store
Explicit load/save boundary for the single-row dashboard settings
"""

import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.models import DashboardSettings
from app.schemas import DashboardSettingsSchema

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = 1


def default_dashboard_settings() -> DashboardSettingsSchema:
    """Dashboard settings derived from application configuration"""
    return DashboardSettingsSchema(
        normal_min=settings.normal_range_min,
        normal_max=settings.normal_range_max,
        unit=settings.default_unit
    )


def load_dashboard_settings(db: Session) -> DashboardSettingsSchema:
    """Load stored settings, falling back to configured defaults"""
    row = db.get(DashboardSettings, SETTINGS_ROW_ID)
    if row is None:
        return default_dashboard_settings()
    return DashboardSettingsSchema.model_validate(row)


def save_dashboard_settings(db: Session, new_settings: DashboardSettingsSchema) -> DashboardSettingsSchema:
    """Persist settings, creating the row on first save"""
    row = db.get(DashboardSettings, SETTINGS_ROW_ID)
    if row is None:
        row = DashboardSettings(id=SETTINGS_ROW_ID)
        db.add(row)

    row.normal_min = new_settings.normal_min
    row.normal_max = new_settings.normal_max
    row.unit = new_settings.unit.value
    row.theme = new_settings.theme.value
    db.commit()

    logger.info(
        f"Dashboard settings saved: {row.normal_min}-{row.normal_max} {row.unit}, theme={row.theme}"
    )
    return DashboardSettingsSchema.model_validate(row)
