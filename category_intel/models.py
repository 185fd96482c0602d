"""Data model for category intelligence.

Plain dataclasses and str Enums shared by the taxonomy client, the
auto-detector, the field builder and the validators. Parsing helpers turn the
taxonomy API's JSON into these types; nothing here performs I/O.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


# ── Enums ────────────────────────────────────────────────────

class RelevancyTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RelevancyTier":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.LOW


class AspectDataType(str, Enum):
    STRING = "STRING"
    STRING_ARRAY = "STRING_ARRAY"
    NUMBER = "NUMBER"
    DATE = "DATE"


class AspectUsage(str, Enum):
    REQUIRED = "REQUIRED"
    RECOMMENDED = "RECOMMENDED"
    OPTIONAL = "OPTIONAL"


class Cardinality(str, Enum):
    SINGLE = "SINGLE"
    MULTI = "MULTI"


class FieldType(str, Enum):
    TEXT = "text"
    SELECT = "select"
    MULTISELECT = "multiselect"
    NUMBER = "number"


class ListingCondition(str, Enum):
    NEW = "NEW"
    USED_LIKE_NEW = "USED_LIKE_NEW"
    USED_EXCELLENT = "USED_EXCELLENT"
    USED_VERY_GOOD = "USED_VERY_GOOD"
    USED_GOOD = "USED_GOOD"
    USED_ACCEPTABLE = "USED_ACCEPTABLE"


# ── Taxonomy types ───────────────────────────────────────────

@dataclass(frozen=True)
class Category:
    id: str
    name: str

    @classmethod
    def from_api(cls, data: dict) -> "Category":
        return cls(id=str(data.get("categoryId", "")), name=data.get("categoryName", ""))


@dataclass
class CategorySuggestion:
    category: Category
    level: int = 0
    relevancy_tier: RelevancyTier = RelevancyTier.LOW
    ancestors: list[Category] = field(default_factory=list)

    @property
    def path(self) -> str:
        """Root-to-leaf display path, e.g. 'Electronics > Cell Phones'."""
        names = [a.name for a in self.ancestors] + [self.category.name]
        return " > ".join(n for n in names if n)

    @classmethod
    def from_api(cls, data: dict) -> "CategorySuggestion":
        ancestors = [Category.from_api(a) for a in data.get("categoryTreeNodeAncestors") or []]
        return cls(
            category=Category.from_api(data.get("category") or {}),
            level=int(data.get("categoryTreeNodeLevel") or 0),
            relevancy_tier=RelevancyTier.parse(data.get("relevancy")),
            ancestors=ancestors,
        )


@dataclass
class AspectConstraint:
    name: str
    data_type: AspectDataType = AspectDataType.STRING
    required: bool = False
    usage_tier: AspectUsage = AspectUsage.OPTIONAL
    cardinality: Cardinality = Cardinality.SINGLE
    allowed_values: Optional[list[str]] = None

    @classmethod
    def from_api(cls, data: dict) -> "AspectConstraint":
        """Parse one entry of ``get_item_aspects_for_category``.

        Missing constraint fields fall back to STRING / SINGLE, and the usage
        tier follows the required flag when the API omits it. Allowed values
        are read from the constraint or, failing that, the aspect itself.
        """
        constraint = data.get("aspectConstraint") or {}
        required = bool(constraint.get("aspectRequired", False))
        usage = constraint.get("aspectUsage") or ("REQUIRED" if required else "OPTIONAL")
        raw_values = constraint.get("aspectValues")
        if raw_values is None:
            raw_values = data.get("aspectValues")
        allowed = None
        if raw_values:
            allowed = [v["localizedValue"] for v in raw_values if v.get("localizedValue")]
        return cls(
            name=data.get("localizedAspectName", ""),
            data_type=AspectDataType(constraint.get("aspectDataType", "STRING")),
            required=required,
            usage_tier=AspectUsage(usage),
            cardinality=Cardinality(constraint.get("itemToAspectCardinality", "SINGLE")),
            allowed_values=allowed or None,
        )


# ── Engine output ────────────────────────────────────────────

@dataclass
class SuggestedCategory:
    category_id: str
    category_name: str
    confidence: RelevancyTier
    auto_detected_aspects: dict[str, list[str]] = field(default_factory=dict)
    required_user_input: list[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SmartCategoryResult:
    suggested_categories: list[SuggestedCategory] = field(default_factory=list)
    recommended_category: str = ""

    @property
    def confidence(self) -> RelevancyTier:
        """Overall confidence: the recommended entry's tier, LOW when empty."""
        for entry in self.suggested_categories:
            if entry.category_id == self.recommended_category:
                return entry.confidence
        return RelevancyTier.LOW

    def to_dict(self) -> dict[str, Any]:
        return {
            "suggestedCategories": [
                {
                    "categoryId": c.category_id,
                    "categoryName": c.category_name,
                    "confidence": c.confidence.value,
                    "autoDetectedAspects": c.auto_detected_aspects,
                    "requiredUserInput": c.required_user_input,
                    **({"error": c.error} if c.error else {}),
                }
                for c in self.suggested_categories
            ],
            "recommendedCategory": self.recommended_category,
        }


@dataclass
class DynamicField:
    name: str
    label: str
    type: FieldType
    required: bool
    options: Optional[list[str]] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return {k: v for k, v in data.items() if v is not None}
