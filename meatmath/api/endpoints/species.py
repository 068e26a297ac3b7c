"""
Species Endpoints

Species are global reference data. Any authenticated user may read them;
creating one is admin-write and requires an owner or admin membership in
at least one organization.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from meatmath.database import get_db
from meatmath.models.species import Species
from meatmath.schemas.species import SpeciesCreate, SpeciesResponse
from meatmath.api.deps import get_current_principal, get_write_access_control
from meatmath.core.roles import ActionClass
from meatmath.core.access_control import AccessControlService
from meatmath.core.exceptions import SpeciesNotFoundError
from meatmath.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/species", tags=["species"])


@router.get("", response_model=list[SpeciesResponse])
async def list_species(
    include_inactive: bool = Query(False),
    principal: str = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    query = db.query(Species)
    if not include_inactive:
        query = query.filter(Species.is_active == True)
    return query.order_by(Species.name).all()


@router.get("/{species_id}", response_model=SpeciesResponse)
async def get_species(
    species_id: str,
    principal: str = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    species = db.get(Species, species_id)
    if species is None:
        raise SpeciesNotFoundError(species_id)
    return species


@router.post("", response_model=SpeciesResponse, status_code=status.HTTP_201_CREATED)
async def create_species(
    species_data: SpeciesCreate,
    principal: str = Depends(get_current_principal),
    access: AccessControlService = Depends(get_write_access_control),
    db: Session = Depends(get_db)
):
    """Create a species. Requires owner or admin in some organization."""
    access.require_in_any_organization(principal, ActionClass.ADMIN_WRITE)

    species = Species(**species_data.model_dump())
    db.add(species)
    db.commit()
    db.refresh(species)

    logger.info(f"Species created: {species.name} ({species.id}) by {principal}")

    return species
