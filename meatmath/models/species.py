"""
Species Model

Species are global reference data shared by every organization, so they
carry no organization_id. Creating one is an admin-write operation.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, Numeric
from datetime import datetime
from decimal import Decimal
from meatmath.database import Base
import uuid


DEFAULT_SPECIES = [
    {
        "name": "Beef Cattle",
        "category": "beef",
        "live_to_hanging_ratio": Decimal("0.6250"),
        "hanging_to_retail_ratio": Decimal("0.7420"),
        "average_processing_cost": Decimal("347.50"),
        "description": "Standard beef cattle processing",
    },
    {
        "name": "Pork",
        "category": "pork",
        "live_to_hanging_ratio": Decimal("0.7200"),
        "hanging_to_retail_ratio": Decimal("0.7180"),
        "average_processing_cost": Decimal("125.00"),
        "description": "Standard pork processing",
    },
    {
        "name": "Lamb",
        "category": "lamb",
        "live_to_hanging_ratio": Decimal("0.5800"),
        "hanging_to_retail_ratio": Decimal("0.6940"),
        "average_processing_cost": Decimal("89.00"),
        "description": "Standard lamb processing",
    },
    {
        "name": "Deer",
        "category": "game",
        "live_to_hanging_ratio": Decimal("0.5500"),
        "hanging_to_retail_ratio": Decimal("0.6610"),
        "average_processing_cost": Decimal("75.00"),
        "description": "Wild game deer processing",
    },
]


class Species(Base):
    __tablename__ = "species"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False)  # beef, pork, lamb, game, ...
    live_to_hanging_ratio = Column(Numeric(5, 4), nullable=False)
    hanging_to_retail_ratio = Column(Numeric(5, 4), nullable=False)
    average_processing_cost = Column(Numeric(10, 2), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Species {self.name}>"


def seed_default_species(db) -> int:
    """Insert the default species when the table is empty. Returns rows added."""
    if db.query(Species).count() > 0:
        return 0
    db.add_all(Species(**row) for row in DEFAULT_SPECIES)
    db.commit()
    return len(DEFAULT_SPECIES)
