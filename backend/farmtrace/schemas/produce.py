"""
FarmTrace Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the produce record and the API contract.
How:   `Produce` doubles as the ledger's stored JSON shape; every attribute
       is a string exactly as it arrived (weights, flags, coordinates and
       timestamps are not reinterpreted).
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Ledger Models
# ══════════════════════════════════════════════════════════════════════════


class Produce(BaseModel):
    """
    One batch of farm produce as stored on the ledger.

    Example:
        {
            "product": "Chicken",
            "weight": "1400.00",
            "organic": "true",
            "location": "67.0006, -70.5476",
            "timestamp": "Fri Jun 22 2018 11:02:01 GMT+0530 (India Standard Time)",
            "holder": "Sakya"
        }
    """
    product: str = Field(description="Product type, e.g. Chicken or Salmon")
    weight: str = Field(description="Weight as sent by the client")
    organic: str = Field(description="'true' or 'false' as sent by the client")
    location: str = Field(description="Latitude and longitude")
    timestamp: str = Field(description="Date-time the produce was recorded")
    holder: str = Field(description="Current holder of the produce")


class ProduceRecord(BaseModel):
    """Key/record pair returned by queryAllProduce."""
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="Key", description="Ledger key")
    record: Produce = Field(alias="Record", description="Stored produce")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class TransactionResponse(BaseModel):
    """Result of a ledger write (record or holder change)."""
    message: str = Field(description="Human-readable outcome")
    tx_id: str = Field(description="Transaction id stamped on the written key")
    key: str = Field(description="Ledger key that was written")
    holder: Optional[str] = Field(default=None, description="New holder, for holder changes")


class ErrorResponse(BaseModel):
    """Standardized error response format for all API errors."""
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service health, returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="World state connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
