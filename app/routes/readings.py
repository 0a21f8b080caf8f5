"""
GlucoTrack - Glucose Reading API Routes
Manual readings, dashboard statistics, settings, import and export
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import GlucoseReading
from app.modules.statistics import compute_reading_stats
from app.schemas import (
    DashboardSettingsSchema, GlucoseReadingCreate, GlucoseReadingResponse,
    ReadingStats, ReadingsBackup, to_naive_utc
)
from app.services.export_service import readings_to_backup, readings_to_csv
from app.services.settings_store import load_dashboard_settings, save_dashboard_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Readings"])

# Settings keys written by older camelCase backups
LEGACY_SETTINGS_KEYS = {
    "normalMin": "normal_min",
    "normalMax": "normal_max",
}


def add_reading(db: Session, reading: GlucoseReadingCreate) -> GlucoseReading:
    """Insert a reading and return the stored row"""
    row = GlucoseReading(
        glucose_level=reading.glucose_level,
        unit=reading.unit.value,
        meal_tag=reading.meal_tag,
        notes=reading.notes,
        timestamp=to_naive_utc(reading.timestamp)
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"Stored reading {row.id}: {row.glucose_level} {row.unit}")
    return row


# =============================================================================
# Readings
# =============================================================================

@router.get("/glucose", response_model=List[GlucoseReadingResponse])
async def list_readings(db: Session = Depends(get_db)):
    """All readings, newest first"""
    return db.scalars(select(GlucoseReading).order_by(GlucoseReading.timestamp.desc())).all()


@router.post("/glucose", response_model=GlucoseReadingResponse, status_code=status.HTTP_201_CREATED)
async def create_reading(reading: GlucoseReadingCreate, db: Session = Depends(get_db)):
    """Add a manually entered reading"""
    return add_reading(db, reading)


@router.delete("/glucose/{reading_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reading(reading_id: int, db: Session = Depends(get_db)):
    """Delete one reading"""
    row = db.get(GlucoseReading, reading_id)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reading {reading_id} not found"
        )
    db.delete(row)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/glucose")
async def clear_readings(db: Session = Depends(get_db)):
    """Delete all readings"""
    result = db.execute(delete(GlucoseReading))
    db.commit()
    logger.warning(f"Cleared {result.rowcount} readings")
    return {"deleted": result.rowcount}


# =============================================================================
# Statistics
# =============================================================================

@router.get("/stats", response_model=ReadingStats)
async def get_stats(db: Session = Depends(get_db)):
    """Dashboard statistics using the stored normal range"""
    dashboard = load_dashboard_settings(db)
    readings = db.scalars(select(GlucoseReading)).all()
    return compute_reading_stats(readings, dashboard.normal_min, dashboard.normal_max)


# =============================================================================
# Settings
# =============================================================================

@router.get("/settings", response_model=DashboardSettingsSchema)
async def get_settings(db: Session = Depends(get_db)):
    """Current dashboard settings"""
    return load_dashboard_settings(db)


@router.put("/settings", response_model=DashboardSettingsSchema)
async def update_settings(new_settings: DashboardSettingsSchema, db: Session = Depends(get_db)):
    """Replace dashboard settings"""
    return save_dashboard_settings(db, new_settings)


# =============================================================================
# Import / Export
# =============================================================================

@router.get("/export/csv")
async def export_csv(db: Session = Depends(get_db)):
    """Download all readings as CSV"""
    readings = db.scalars(select(GlucoseReading)).all()
    return Response(
        content=readings_to_csv(readings),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="glucose_data.csv"'}
    )


@router.get("/export/json")
async def export_json(db: Session = Depends(get_db)):
    """Download a JSON backup of readings and settings"""
    readings = db.scalars(select(GlucoseReading).order_by(GlucoseReading.timestamp.desc())).all()
    dashboard = load_dashboard_settings(db)
    return readings_to_backup(readings, dashboard.model_dump(mode="json"))


@router.post("/import/json")
async def import_json(backup: ReadingsBackup, db: Session = Depends(get_db)):
    """Replace all readings (and optionally settings) from a JSON backup"""
    try:
        readings = [
            GlucoseReadingCreate(
                glucose_level=entry.get("glucose_level", entry.get("glucose")),
                unit=entry.get("unit") or "mg/dL",
                meal_tag=entry.get("meal_tag", entry.get("mealTag")),
                notes=entry.get("notes"),
                timestamp=entry["timestamp"]
            )
            for entry in backup.data
        ]
        imported_settings = None
        if backup.settings:
            # Imported keys are layered over the stored settings
            merged = load_dashboard_settings(db).model_dump()
            merged.update({
                LEGACY_SETTINGS_KEYS.get(key, key): value
                for key, value in backup.settings.items()
            })
            imported_settings = DashboardSettingsSchema(**merged)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file format: {e}"
        )

    db.execute(delete(GlucoseReading))
    for reading in readings:
        db.add(GlucoseReading(
            glucose_level=reading.glucose_level,
            unit=reading.unit.value,
            meal_tag=reading.meal_tag,
            notes=reading.notes,
            timestamp=to_naive_utc(reading.timestamp)
        ))
    db.commit()

    if imported_settings is not None:
        save_dashboard_settings(db, imported_settings)

    logger.info(f"Imported {len(readings)} readings from backup")
    return {"imported": len(readings)}
