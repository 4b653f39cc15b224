"""
Meta router - partogram field definitions.

Exposes core/partogram_fields.yaml so ward clients can build entry forms
(option codes, units, bounds) without hardcoding them.

No authentication required for read-only metadata access.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from core.exceptions import NotFoundError
from core.field_registry import FieldDefinition, get_field, list_fields

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/meta",
    tags=["Metadata"],
)


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class FieldDefinitionResponse(BaseModel):
    """Single field definition for API response."""
    name: str
    type: str
    min: Optional[float] = None
    max: Optional[float] = None
    exclusive: bool = False
    options: List[Any] = []
    pattern: Optional[str] = None
    unit: str
    group: str
    description: str


class FieldsListResponse(BaseModel):
    """All field definitions, plus their chart groups in display order."""
    fields: List[FieldDefinitionResponse]
    groups: List[str]


def _field_to_response(definition: FieldDefinition) -> FieldDefinitionResponse:
    """Convert internal FieldDefinition to API response model."""
    return FieldDefinitionResponse(
        name=definition.name,
        type=definition.type,
        min=definition.min_value,
        max=definition.max_value,
        exclusive=definition.exclusive,
        options=list(definition.options),
        pattern=definition.pattern,
        unit=definition.unit,
        group=definition.group,
        description=definition.description,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/fields",
    response_model=FieldsListResponse,
    summary="List partogram field definitions"
)
async def list_field_definitions() -> FieldsListResponse:
    """Every field a measurement may carry, in registry order."""
    definitions = list_fields()
    groups: List[str] = []
    for d in definitions:
        if d.group not in groups:
            groups.append(d.group)

    return FieldsListResponse(
        fields=[_field_to_response(d) for d in definitions],
        groups=groups,
    )


@router.get(
    "/fields/{field_name}",
    response_model=FieldDefinitionResponse,
    summary="Get one field definition"
)
async def get_field_definition(field_name: str) -> FieldDefinitionResponse:
    definition = get_field(field_name)
    if definition is None:
        raise NotFoundError(detail=f"Unknown partogram field '{field_name}'", field=field_name)
    return _field_to_response(definition)


@router.get(
    "/statuses",
    summary="Labor statuses and badge colors"
)
async def list_statuses() -> Dict[str, Any]:
    """Closed set of labor statuses, for legends in ward views."""
    from models import LaborStatus

    return {
        "statuses": [
            {"value": s.value, "label": s.label, "color": s.status_color}
            for s in LaborStatus
        ]
    }
