"""
Pydantic request models for the API.
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from ..engine.models import RoofConfiguration


class CustomSurchargeModel(BaseModel):
    name: str
    price: float = 0


class ConfigurationModel(BaseModel):
    """Request model mirroring RoofConfiguration."""
    roof_type_code: str = 'HORIZONT'
    width: int = 3200
    modules: int = 2

    use_standard_length: bool = True
    custom_length: Optional[int] = None
    use_standard_height: bool = True
    custom_height: Optional[int] = None

    solid_poly_modules: int = 0
    solid_poly_big_front: bool = False
    solid_poly_small_front: bool = False
    solid_poly_skirts: bool = False
    color_change_modules: int = 0
    color_change_big_front: bool = False
    color_change_small_front: bool = False

    has_big_front: bool = True
    big_front_type: str = 'fixed'
    big_front_doors_width: Optional[int] = None
    big_front_doors_height: Optional[int] = None
    big_front_doors_large: bool = False
    big_front_flap_height: Optional[int] = None
    big_front_lock: bool = False

    has_small_front: bool = True
    small_front_type: str = 'fixed'
    small_front_doors_width: Optional[int] = None
    small_front_doors_height: Optional[int] = None
    small_front_doors_large: bool = False
    small_front_flap_height: Optional[int] = None
    small_front_lock: bool = False

    has_side_doors: bool = False
    side_door_lock: bool = False

    walking_rails: bool = False
    bidirectional_rails: bool = False
    rail_extension: int = 0

    mountain_reinforcement: bool = False
    segment_locking: bool = False

    surface_type: str = 'standard'
    ral_color: Optional[str] = None

    custom_surcharges: list[CustomSurchargeModel] = Field(default_factory=list)

    include_transport: bool = True
    transport_km: float = 0
    transport_rate: float = 19

    installation_type: str = 'none'
    discount_percent: float = 0

    def to_configuration(self) -> RoofConfiguration:
        return RoofConfiguration.from_dict(self.model_dump())


class QuoteCreate(BaseModel):
    """Request model for creating a quote."""
    customer_name: str
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    dealer_name: Optional[str] = None
    dealer_contact: Optional[str] = None
    configuration: ConfigurationModel
    notes: Optional[str] = None
    validity_months: int = Field(default=3, ge=1)
    prepared_by: Optional[str] = None


class QuoteUpdate(BaseModel):
    """Request model for updating quote metadata."""
    status: Optional[str] = None
    notes: Optional[str] = None
    validity_months: Optional[int] = Field(default=None, ge=1)
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    dealer_name: Optional[str] = None
    dealer_contact: Optional[str] = None


class SurchargeCreate(BaseModel):
    code: str
    name: str
    category: str = 'OTHER'
    type: str = 'FIXED'
    value: float
    value_rock: Optional[float] = None
    min_value: Optional[float] = None
    description: Optional[str] = None
    sort_order: int = 0
    active: bool = True


class SurchargeUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    value: Optional[float] = None
    value_rock: Optional[float] = None
    min_value: Optional[float] = None
    description: Optional[str] = None
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class RoofTypeUpdate(BaseModel):
    name: Optional[str] = None
    min_width: Optional[int] = None
    max_width: Optional[int] = None
    has_skirts: Optional[bool] = None
    min_modules: Optional[int] = None
    max_modules: Optional[int] = None
    sort_order: Optional[int] = None
    active: Optional[bool] = None


class PriceCellUpdate(BaseModel):
    """One matrix cell, addressed by its width band and module count."""
    width_min: int
    width_max: int
    modules: int
    price: Optional[float] = None
    height: Optional[float] = None


class PriceBulkUpdate(BaseModel):
    roof_type: str
    updates: list[PriceCellUpdate] = Field(min_length=1)


class PriceRow(BaseModel):
    width_label: Optional[str] = None
    width_min: int
    width_max: int
    modules: int
    price: float
    height: float


class PriceTableReplace(BaseModel):
    rows: list[PriceRow] = Field(min_length=1)
