"""Pre-flight validation before a listing is handed to the submission API.

All checks run and every problem is reported at once; the inputs are never
mutated. ``SubmissionValidator`` adds the leaf-category check, which needs
the taxonomy service.
"""
import logging
import math
from decimal import ROUND_CEILING, Decimal, InvalidOperation
from typing import Mapping, Optional, Union

from category_intel.models import DynamicField, ListingCondition
from category_intel.taxonomy import TaxonomyClient

logger = logging.getLogger(__name__)

CATEGORY_NOT_LEAF_MESSAGE = (
    "The selected category is too broad. Please choose a more specific category for your item."
)

Price = Union[int, float, str, Decimal, None]


def merge_aspects(
    auto_detected: Mapping[str, list[str]],
    user_provided: Mapping[str, list[str]],
) -> dict[str, list[str]]:
    """Auto-detected values overlaid with the user's; the user wins on collision."""
    merged = {k: list(v) for k, v in auto_detected.items()}
    merged.update({k: list(v) for k, v in user_provided.items()})
    return merged


def _has_value(values) -> bool:
    if values is None:
        return False
    if isinstance(values, str):
        return bool(values.strip())
    if not isinstance(values, (list, tuple, set)):
        values = [values]
    return any(v is not None and str(v).strip() for v in values)


def _parse_price(price: Price) -> Optional[float]:
    if price is None or isinstance(price, bool):
        return None
    try:
        value = float(price)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def format_price(price: Price) -> str:
    """Round a price up to two decimals, e.g. 12.341 -> '12.35'."""
    try:
        value = Decimal(str(price))
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {price!r}") from e
    return str(value.quantize(Decimal("0.01"), rounding=ROUND_CEILING))


def validate_before_submission(
    fields: list[DynamicField],
    aspects: Mapping[str, list[str]],
    category_id: Optional[str],
    price: Price,
    condition: Optional[str] = None,
) -> list[str]:
    """Collect every problem that would block submission.

    Args:
        fields: Dynamic fields of the selected category.
        aspects: Merged aspects (see ``merge_aspects``).
        category_id: Selected category id.
        price: Listing price.
        condition: Selected condition, checked only when given.

    Returns:
        Human-readable errors in check order; empty means ready to submit.
    """
    errors: list[str] = []

    for f in fields:
        if f.required and not _has_value(aspects.get(f.name)):
            errors.append(f'"{f.label}" is required for this category')

    if not category_id or not str(category_id).strip():
        errors.append("Please select a category")

    value = _parse_price(price)
    if value is None:
        errors.append("Please enter a price")
    elif value <= 0:
        errors.append("Price must be greater than 0")

    if condition is not None:
        try:
            ListingCondition(condition)
        except ValueError:
            errors.append(f"Unknown item condition: {condition}")

    return errors


class SubmissionValidator:
    """Submission checks including the leaf-category rule."""

    def __init__(self, taxonomy: TaxonomyClient):
        self.taxonomy = taxonomy

    async def validate(
        self,
        fields: list[DynamicField],
        aspects: Mapping[str, list[str]],
        category_id: Optional[str],
        price: Price,
        condition: Optional[str] = None,
    ) -> list[str]:
        errors = validate_before_submission(fields, aspects, category_id, price, condition)
        if category_id and str(category_id).strip():
            if not await self.taxonomy.is_leaf(str(category_id)):
                errors.append(CATEGORY_NOT_LEAF_MESSAGE)
        if errors:
            logger.info("Submission blocked by %d validation errors", len(errors))
        return errors
