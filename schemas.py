"""
Database Schemas

Pydantic models for the stored documents and the request bodies of the API.
Model name is converted to lowercase for the collection name:
- Dashboard -> "dashboard" collection
- Chart -> "chart" collection
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any

from classifier import ChartType
from layout import DEFAULT_COLUMNS, DEFAULT_HEIGHT, DEFAULT_WIDTH

DEFAULT_COLOR = "#60a5fa"


class Dashboard(BaseModel):
    """
    Named collection of charts laid out on a grid
    Collection name: "dashboard"
    """
    name: str = Field(..., description="Dashboard display name")
    description: Optional[str] = None
    columns: int = Field(DEFAULT_COLUMNS, ge=1, description="Grid width in cells")
    templateId: Optional[str] = Field(None, description="Layout template the dashboard was built from")

    @field_validator("columns", mode="before")
    @classmethod
    def default_columns(cls, v):
        return DEFAULT_COLUMNS if v is None else v


class Chart(BaseModel):
    """
    Chart widget placed on a dashboard
    Collection name: "chart"
    """
    dashboardId: str = Field(..., description="Owning dashboard id (string)")
    type: str = Field(..., description="Chart type: number, bar, line, pie, ...")
    title: str = Field(..., description="Chart title")
    dataEndpoint: str = Field(..., description="URL returning the chart's data")
    color: str = DEFAULT_COLOR
    x: int = Field(0, description="Grid column")
    y: int = Field(0, description="Grid row")
    w: int = Field(DEFAULT_WIDTH, description="Width in cells")
    h: int = Field(DEFAULT_HEIGHT, description="Height in cells")

    # Records written before layout fields existed have no coordinates
    @field_validator("x", "y", "w", "h", "color", mode="before")
    @classmethod
    def fill_missing(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


def read_record(model, doc: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a stored document; unknown legacy keys (chartIds, charts) are dropped."""
    out = model.model_validate(doc).model_dump()
    out["id"] = doc.get("id")
    out["createdAt"] = doc.get("createdAt")
    out["updatedAt"] = doc.get("updatedAt")
    return out


# ---------- Request bodies ----------

class CreateDashboard(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    templateId: Optional[str] = None
    columns: Optional[int] = Field(None, ge=1, le=48)


class UpdateDashboard(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

    # omitted means unchanged; an explicit null would leave a nameless dashboard
    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("name cannot be null")
        return v


class CreateChart(BaseModel):
    dashboardId: str
    type: ChartType
    title: str = Field(..., min_length=1)
    dataEndpoint: str = Field(..., min_length=1)
    color: Optional[str] = None
    x: Optional[int] = Field(None, ge=0)
    y: Optional[int] = Field(None, ge=0)
    w: Optional[int] = Field(None, ge=1)
    h: Optional[int] = Field(None, ge=1)


class UpdateChart(BaseModel):
    type: Optional[ChartType] = None
    title: Optional[str] = Field(None, min_length=1)
    dataEndpoint: Optional[str] = Field(None, min_length=1)
    color: Optional[str] = None
    x: Optional[int] = Field(None, ge=0)
    y: Optional[int] = Field(None, ge=0)
    w: Optional[int] = Field(None, ge=1)
    h: Optional[int] = Field(None, ge=1)


class LayoutItem(BaseModel):
    id: str
    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    w: int = Field(..., ge=1)
    h: int = Field(..., ge=1)


class UpdateLayout(BaseModel):
    items: List[LayoutItem] = Field(default_factory=list)
