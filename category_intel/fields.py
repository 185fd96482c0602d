"""Dynamic listing fields.

Turns the aspects of the selected category that were not auto-detected into
UI-agnostic field descriptors. Only REQUIRED and RECOMMENDED aspects become
fields, in the schema's own order.
"""
import logging
from typing import Mapping

from category_intel.models import (
    AspectConstraint,
    AspectDataType,
    AspectUsage,
    Cardinality,
    DynamicField,
    FieldType,
)

logger = logging.getLogger(__name__)

HELP_REQUIRED = "Required by marketplace"
HELP_RECOMMENDED = "Recommended for better visibility"


def infer_field_type(aspect: AspectConstraint) -> FieldType:
    if aspect.allowed_values:
        if aspect.cardinality == Cardinality.MULTI:
            return FieldType.MULTISELECT
        return FieldType.SELECT
    if aspect.data_type == AspectDataType.NUMBER:
        return FieldType.NUMBER
    return FieldType.TEXT


def create_dynamic_fields(
    aspects: list[AspectConstraint],
    auto_detected: Mapping[str, list[str]],
) -> list[DynamicField]:
    """Build input fields for the aspects the user still has to supply."""
    fields: list[DynamicField] = []
    for aspect in aspects:
        if aspect.name in auto_detected:
            continue
        if aspect.usage_tier == AspectUsage.OPTIONAL and not aspect.required:
            continue
        fields.append(
            DynamicField(
                name=aspect.name,
                label=aspect.name,
                type=infer_field_type(aspect),
                required=aspect.required,
                options=list(aspect.allowed_values) if aspect.allowed_values else None,
                placeholder=f"Enter {aspect.name.lower()}",
                help_text=HELP_REQUIRED if aspect.usage_tier == AspectUsage.REQUIRED else HELP_RECOMMENDED,
            )
        )
    logger.info("Created %d dynamic fields for user input", len(fields))
    return fields
