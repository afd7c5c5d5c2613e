from typing import Any
from pydantic import BaseModel, ConfigDict

class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Optional on purpose: a missing address is a 200 success:false, not a 422
    address: str | None = None
    # Form posts send these as strings; parsed leniently downstream
    bedrooms: int | float | str | None = None
    bathrooms: int | float | str | None = None
    occupancy: int | float | str | None = None
    # Attribution, written to the query log
    referrer: str | None = None
    utm_source: str | None = None
    agent_id: str | int | None = None

class AnalysisData(BaseModel):
    property_details: Any = None
    property_statistics: Any = None
    comps: list = []
    market_name: Any = None
    submarket_name: Any = None
    market_score: Any = None
    submarket_score: Any = None
    ard: str
    occupancy: str
    projected_revenue_typical: float
    projected_revenue_top_25: float
    projected_revenue_top_10: float

class AnalysisResponse(BaseModel):
    success: bool
    message: str
    data: AnalysisData | None = None
