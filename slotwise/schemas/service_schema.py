from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class ServiceCategory(str, Enum):
    grass_cutting = "GRASS_CUTTING"
    aircon_repair = "AIRCON_REPAIR"
    cleaning = "CLEANING"
    haircut = "HAIRCUT"


class ServiceBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, example="Lawn Mowing Service")
    description: Optional[str] = Field(None, max_length=1000, example="Professional lawn mowing for residential properties")
    category: ServiceCategory = Field(..., example=ServiceCategory.grass_cutting)
    base_price: float = Field(..., ge=0, example=500)
    duration_minutes: int = Field(..., gt=0, le=1440, example=60)


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[ServiceCategory] = None
    base_price: Optional[float] = Field(None, ge=0)
    duration_minutes: Optional[int] = Field(None, gt=0, le=1440)


class ServiceResponse(ServiceBase):
    id: str
    provider_id: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
