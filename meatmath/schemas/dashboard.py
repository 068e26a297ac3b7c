"""
Dashboard Schemas
"""
from pydantic import BaseModel
from decimal import Decimal


class DashboardMetrics(BaseModel):
    """Headline numbers for one organization."""
    total_animals: int
    revenue: Decimal
    average_yield: Decimal
    active_customers: int
