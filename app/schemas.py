"""
GlucoTrack - Data Schemas
Pydantic models for glucose extraction results, readings and reports
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum


# ============================================================================
# Enumerations
# ============================================================================

class GlucoseUnit(str, Enum):
    """Glucose concentration units"""
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"


# mg/dL per mmol/L for glucose
MMOL_TO_MG_DL = 18.0

# Accepted reading range in mg/dL
READING_MIN_MG_DL = 30.0
READING_MAX_MG_DL = 500.0


def to_mg_dl(value: float, unit: "GlucoseUnit") -> float:
    """Express a glucose value in mg/dL"""
    return value * MMOL_TO_MG_DL if unit == GlucoseUnit.MMOL_L else value


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored and compared as naive UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class ScanMode(str, Enum):
    """
    Line scanning modes

    STRICT: marker phrases only, context window of two lines either side
    (report pathway). LENIENT: marker phrases or any "glucose" mention,
    context window is the flagged line alone (pasted text pathway).
    """
    STRICT = "strict"
    LENIENT = "lenient"


class Theme(str, Enum):
    """Dashboard colour theme"""
    AUTO = "auto"
    LIGHT = "light"
    DARK = "dark"


# ============================================================================
# Extraction Models
# ============================================================================

class ExtractedValue(BaseModel):
    """One candidate glucose measurement found in text"""
    model_config = ConfigDict(frozen=True)

    value: float
    unit: GlucoseUnit
    context: str = Field(..., description="Trimmed anchor line the value was found for")
    line_number: int = Field(..., ge=1, description="1-based index of the anchor line")
    pattern: str = Field(..., description="Name of the numeric pattern that matched")
    matched_text: str = Field(..., description="Full matched substring")

    @property
    def line(self) -> int:
        return self.line_number


class UnitSummary(BaseModel):
    """Summary statistics for all extracted values sharing a unit"""
    unit: GlucoseUnit
    count: int = Field(..., ge=1)
    min: float
    max: float
    mean: float
    median: float
    values: List[float]


class ExtractionResult(BaseModel):
    """Ordered extraction results with optional per-unit summary"""
    results: List[ExtractedValue] = Field(default_factory=list)
    summary: Dict[str, UnitSummary] = Field(default_factory=dict)
    mode: ScanMode = ScanMode.LENIENT
    lines_scanned: int = 0


class TextExtractionRequest(BaseModel):
    """Request body for pasted-text extraction"""
    text: Optional[str] = None
    mode: Optional[ScanMode] = None


class PromoteRequest(BaseModel):
    """Request to store an extracted value as a glucose reading"""
    value: float = Field(..., gt=0)
    unit: GlucoseUnit = GlucoseUnit.MG_DL
    context: str = ""
    timestamp: Optional[datetime] = None
    meal_tag: Optional[str] = "Fasting"
    notes: Optional[str] = None


# ============================================================================
# Reading Models
# ============================================================================

class GlucoseReadingCreate(BaseModel):
    """Manually entered glucose reading"""
    glucose_level: float = Field(..., gt=0)
    unit: GlucoseUnit = GlucoseUnit.MG_DL
    meal_tag: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime

    @model_validator(mode="after")
    def validate_level(self) -> "GlucoseReadingCreate":
        """Level must fall within 30-500 mg/dL, after conversion for mmol/L"""
        level = to_mg_dl(self.glucose_level, self.unit)
        if not READING_MIN_MG_DL <= level <= READING_MAX_MG_DL:
            raise ValueError("Glucose value must be between 30 and 500 mg/dL")
        return self


class GlucoseReadingResponse(BaseModel):
    """Stored glucose reading"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    glucose_level: float
    unit: str
    meal_tag: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime
    created_at: Optional[datetime] = None


class ReadingStats(BaseModel):
    """Aggregate statistics over stored readings"""
    total_readings: int = 0
    average: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    normal_readings: int = 0
    time_in_range: float = 0.0
    last_week_average: Optional[float] = None


class DashboardSettingsSchema(BaseModel):
    """User-adjustable dashboard settings"""
    model_config = ConfigDict(from_attributes=True)

    normal_min: float = Field(70.0, gt=0)
    normal_max: float = Field(140.0, gt=0)
    unit: GlucoseUnit = GlucoseUnit.MG_DL
    theme: Theme = Theme.AUTO

    @model_validator(mode="after")
    def validate_range(self) -> "DashboardSettingsSchema":
        """Minimum must stay below maximum"""
        if self.normal_min >= self.normal_max:
            raise ValueError("Minimum value must be less than maximum value")
        return self


class ReadingsBackup(BaseModel):
    """JSON backup document for import/export"""
    exportDate: Optional[datetime] = None
    settings: Optional[Dict[str, Any]] = None
    data: List[Dict[str, Any]]

    @field_validator("data")
    @classmethod
    def validate_data(cls, v: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Every entry needs at least a level and a timestamp"""
        for entry in v:
            level = entry.get("glucose_level", entry.get("glucose"))
            if level is None or entry.get("timestamp") is None:
                raise ValueError("Each reading needs a glucose value and a timestamp")
        return v


# ============================================================================
# Report Models
# ============================================================================

class ReportSummary(BaseModel):
    """Stored report without its full text"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: Optional[str] = None
    scan_mode: str
    value_count: int
    created_at: Optional[datetime] = None


class ReportDetail(ReportSummary):
    """Stored report including decoded text and extracted values"""
    extracted_text: Optional[str] = None
    extracted_values: List[ExtractedValue] = Field(default_factory=list)


class PDFProcessingResponse(BaseModel):
    """Result of processing an uploaded PDF report"""
    report_id: Optional[int] = None
    filename: str
    page_count: int = 0
    extracted_text: str
    glucose_values: List[ExtractedValue] = Field(default_factory=list)
    summary: Dict[str, UnitSummary] = Field(default_factory=dict)
    success: bool = True


ExportFormat = Literal["csv", "json"]
