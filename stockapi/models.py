"""
Pydantic models for the stock resource.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class StockIn(BaseModel):
    """
    Client-supplied stock fields. Any stockid in the body is ignored.

    Missing or null fields take their zero value. NaN and Infinity are
    rejected since they cannot be written back out as JSON.
    """
    name: str = ""
    price: float = Field(default=0, allow_inf_nan=False)
    company: str = ""

    @field_validator("name", "company", mode="before")
    @classmethod
    def null_text_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("price", mode="before")
    @classmethod
    def null_price_to_zero(cls, value):
        return 0 if value is None else value


class Stock(BaseModel):
    """Stock record as stored in the stocks table."""
    stockid: int
    name: str
    price: float
    company: str


class StockResponse(BaseModel):
    """Acknowledgement returned by create, update and delete."""
    id: int
    message: str


class HealthCheck(BaseModel):
    """Health check response model."""
    status: str
    database_connected: bool
    stock_count: Optional[int] = None
    pool_status: Optional[str] = None
    timestamp: str
    error: Optional[str] = None
