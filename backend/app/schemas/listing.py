from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Dict, Any


class FacetOptionOut(BaseModel):
    name: str
    count: int
    id: Optional[str] = None


class ItemOut(BaseModel):
    id: str
    title: str = ""
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    price: Optional[float] = None
    payment: Optional[float] = None
    mileage: Optional[int] = None
    condition: Optional[str] = None
    vehicle_type: Optional[str] = None
    drive_type: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    exterior_color: Optional[str] = None
    interior_color: Optional[str] = None
    seller_type: Optional[str] = None
    dealer: Optional[str] = None
    dealer_account: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    image: Optional[str] = None
    listed_at: Optional[datetime] = None


class SellerOut(BaseModel):
    account: str
    name: str
    seller_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None


class MetaOut(BaseModel):
    totalRecords: int
    totalPages: int
    currentPage: int
    pageSize: int
    hasNextPage: bool
    hasPreviousPage: bool


class CombinedResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    data: List[ItemOut] = Field(default_factory=list)
    meta: MetaOut
    filters: Dict[str, List[FacetOptionOut]] = Field(default_factory=dict)
    sellers: List[SellerOut] = Field(default_factory=list)
    appliedFilters: Dict[str, Any] = Field(default_factory=dict)
    canonicalUrl: str


class FiltersResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    filters: Dict[str, List[FacetOptionOut]] = Field(default_factory=dict)


class FilterStateIn(BaseModel):
    make: List[str] = Field(default_factory=list)
    model: List[str] = Field(default_factory=list)
    trim: List[str] = Field(default_factory=list)
    year: List[str] = Field(default_factory=list)
    condition: List[str] = Field(default_factory=list)
    vehicle_type: List[str] = Field(default_factory=list)
    drive_type: List[str] = Field(default_factory=list)
    transmission: List[str] = Field(default_factory=list)
    fuel_type: List[str] = Field(default_factory=list)
    exterior_color: List[str] = Field(default_factory=list)
    interior_color: List[str] = Field(default_factory=list)
    seller_type: List[str] = Field(default_factory=list)
    dealer: List[str] = Field(default_factory=list)
    city: List[str] = Field(default_factory=list)
    state: List[str] = Field(default_factory=list)
    mileage: str = ""
    price_min: str = ""
    price_max: str = ""
    year_min: str = ""
    year_max: str = ""
    payment_min: str = ""
    payment_max: str = ""


class ApplyFilterIn(BaseModel):
    state: FilterStateIn = Field(default_factory=FilterStateIn)
    # a list facet name, or a scalar field such as price_min / mileage
    dimension: str
    # toggles one value; `values` replaces the whole selection instead
    value: Optional[str] = None
    values: Optional[List[str]] = None


class ApplyFilterOut(BaseModel):
    state: FilterStateIn
    url: str
