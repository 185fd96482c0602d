"""Listing-submission fault translation.

Maps raw faults from the listing API into internal tokens, user-facing
sentences, a recoverability flag and remediation steps.

Structured fault codes are mapped first (FAULT_CODE_TOKENS). Free-text
matching over messages (FRIENDLY_RULES) is the fallback for faults without a
known code; when nothing matches, the raw message is echoed so the real
problem is never hidden. All mappings are data tables: a new code or message
is a new row.
"""
import json
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from category_intel.taxonomy import TaxonomyError

UNKNOWN_ERROR = "Unknown error occurred"
CATEGORY_NOT_LEAF = "CATEGORY_NOT_LEAF"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

_MISSING_SPECIFIC = r"The item specific ([^.]+) is missing"
_INVALID_SPECIFIC = r"The item specific ([^.]+) is invalid"
_MISSING_TOKEN = rf"^{MISSING_REQUIRED_FIELD}:(.+)$"
# Only the category itself being rejected; operation names mention "category" too.
_INVALID_CATEGORY = r"\bcategory(?: id)? (?:is )?(?:not valid|invalid)\b|\binvalid category\b"


# ── Structured fault codes ───────────────────────────────────

@dataclass(frozen=True)
class FaultCode:
    token: str
    field_regex: Optional[str] = None


FAULT_CODE_TOKENS: dict[str, FaultCode] = {
    "25002": FaultCode(CATEGORY_NOT_LEAF),
    "25003": FaultCode(MISSING_REQUIRED_FIELD + ":{field}", _MISSING_SPECIFIC),
}


def _coerce_payload(payload: Any) -> Any:
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str) and payload.lstrip().startswith("{"):
        try:
            return json.loads(payload)
        except ValueError:
            return payload
    return payload


def parse_fault(payload: Union[dict, str, bytes, None]) -> str:
    """Reduce a fault payload to a token or raw message.

    Accepts ``{"errors": [{"errorId": ..., "message": ...}]}`` (or its JSON
    text) and plain strings, which are returned as-is.
    """
    payload = _coerce_payload(payload)
    if isinstance(payload, str):
        return payload or UNKNOWN_ERROR
    if not isinstance(payload, dict) or not payload.get("errors"):
        return UNKNOWN_ERROR

    first = payload["errors"][0]
    if not first:
        return UNKNOWN_ERROR
    message = first.get("message") or ""
    code = FAULT_CODE_TOKENS.get(str(first.get("errorId", "")))
    if code is not None:
        if code.field_regex is None:
            return code.token
        m = re.search(code.field_regex, message)
        if m:
            return code.token.format(field=m.group(1))
    return message or UNKNOWN_ERROR


# ── Friendly messages ────────────────────────────────────────

@dataclass(frozen=True)
class FriendlyRule:
    """A message rule.

    Matches when ``pattern`` (if set) is found, every ``all_of`` substring
    occurs and, if given, at least one ``any_of`` substring occurs.
    Substrings are compared case-insensitively.
    """
    message: str
    all_of: tuple[str, ...] = ()
    any_of: tuple[str, ...] = ()
    pattern: Optional[str] = None
    field_regex: Optional[str] = None
    default_field: str = "required field"

    def matches(self, error: str) -> bool:
        if self.pattern and not re.search(self.pattern, error, re.IGNORECASE):
            return False
        lowered = error.lower()
        if not all(s in lowered for s in self.all_of):
            return False
        return not self.any_of or any(s in lowered for s in self.any_of)

    def render(self, error: str) -> str:
        if not self.field_regex:
            return self.message
        m = re.search(self.field_regex, error, re.IGNORECASE)
        return self.message.format(field=m.group(1).strip() if m else self.default_field)


_TOO_BROAD = "The selected category is too broad. Please choose a more specific category for your item."
_POLICY = "Your marketplace account needs {} policies set up. Please configure your seller policies."

FRIENDLY_RULES: list[FriendlyRule] = [
    FriendlyRule(_TOO_BROAD, all_of=(CATEGORY_NOT_LEAF.lower(),)),
    FriendlyRule(
        'This category requires "{field}" to be specified. '
        "Please provide this information or select a different category.",
        pattern=_MISSING_TOKEN,
        field_regex=_MISSING_TOKEN,
    ),
    FriendlyRule(
        "One or more of your images has an invalid URL. Please check your images and try again.",
        all_of=("invalid picture url",),
    ),
    FriendlyRule(
        "Marketplace account setup incomplete. Please check your seller account settings.",
        all_of=("location information not found",),
    ),
    FriendlyRule(_POLICY.format("shipping"), all_of=("fulfillment policy",)),
    FriendlyRule(_POLICY.format("payment"), all_of=("payment policy",)),
    FriendlyRule(_POLICY.format("return"), all_of=("return policy",)),
    FriendlyRule(_TOO_BROAD, all_of=("not a leaf category",)),
    FriendlyRule(
        'This category requires "{field}" to be specified. Please provide this information.',
        all_of=("item specific", "missing"),
        field_regex=_MISSING_SPECIFIC,
    ),
    FriendlyRule(
        'The value for "{field}" is not valid for this category. Please check the allowed values.',
        all_of=("item specific", "invalid"),
        field_regex=_INVALID_SPECIFIC,
        default_field="field",
    ),
    FriendlyRule(
        "Your listing title is too long. Please shorten it to 80 characters or less.",
        all_of=("title", "too long"),
    ),
    FriendlyRule(
        "Your listing description is too long. Please shorten it.",
        all_of=("description", "too long"),
    ),
    FriendlyRule(
        "The price you entered is not valid. Please enter a valid price.",
        all_of=("price", "invalid"),
    ),
    FriendlyRule(
        "You can only upload up to 12 images per listing. Please remove some images.",
        all_of=("image", "too many"),
    ),
    FriendlyRule(
        "Your marketplace session has expired. Please reconnect your seller account.",
        any_of=("unauthorized", "401"),
    ),
    FriendlyRule(
        "You do not have permission to perform this action. Please check your account permissions.",
        any_of=("forbidden", "403"),
    ),
    FriendlyRule(
        "Too many requests. Please wait a moment and try again.",
        any_of=("rate limit", "429"),
    ),
    FriendlyRule(
        "Network connection issue. Please check your internet connection and try again.",
        any_of=("network", "timeout"),
    ),
    FriendlyRule(
        "The selected category cannot be used for this listing. Please choose a different category.",
        pattern=_INVALID_CATEGORY,
    ),
]


def get_user_friendly_error(error: str) -> str:
    """First matching rule's sentence, else a message echoing the raw error."""
    for rule in FRIENDLY_RULES:
        if rule.matches(error):
            return rule.render(error)
    return f"Listing failed: {error}. Please try again or contact support."


# ── Recoverability / remediation ─────────────────────────────

RECOVERABLE_MARKERS = (
    CATEGORY_NOT_LEAF,
    "not a leaf category",
    MISSING_REQUIRED_FIELD,
    "item specific",
    "invalid picture url",
    "image",
    "title",
    "description",
    "price",
)


def is_recoverable_error(error: str) -> bool:
    """True when the user can fix the problem by editing the listing."""
    lowered = error.lower()
    return any(marker.lower() in lowered for marker in RECOVERABLE_MARKERS)


@dataclass(frozen=True)
class ActionRule:
    actions: tuple[str, ...]
    any_of: tuple[str, ...] = ()
    field_regex: Optional[str] = None

    def matches(self, error: str) -> bool:
        if self.field_regex and re.search(self.field_regex, error, re.IGNORECASE):
            return True
        lowered = error.lower()
        return any(s in lowered for s in self.any_of)

    def render(self, error: str) -> list[str]:
        if not self.field_regex:
            return list(self.actions)
        m = re.search(self.field_regex, error, re.IGNORECASE)
        groups = [g for g in m.groups() if g] if m else []
        name = groups[0].strip() if groups else "required"
        return [a.format(field=name) for a in self.actions]


ACTION_RULES: list[ActionRule] = [
    ActionRule(
        (
            "Choose a more specific category from the suggestions",
            "Browse marketplace categories to find the exact match",
            "Contact support if you cannot find the right category",
        ),
        any_of=(CATEGORY_NOT_LEAF.lower(), "not a leaf category"),
    ),
    ActionRule(
        (
            'Fill in the "{field}" field',
            "Check the Additional Information section",
            "Select a different category if this field is not applicable",
        ),
        field_regex=rf"(?:{_MISSING_TOKEN}|{_MISSING_SPECIFIC})",
    ),
    ActionRule(
        (
            "Go to Account Settings",
            "Disconnect and reconnect your marketplace account",
            "Make sure you have seller permissions",
        ),
        any_of=("unauthorized", "401"),
    ),
    ActionRule(
        (
            "Log into your marketplace seller account",
            "Set up shipping, payment and return policies in Account Settings",
            "Come back and try listing again",
        ),
        any_of=("fulfillment policy", "payment policy", "return policy"),
    ),
]

DEFAULT_ACTIONS = (
    "Check your internet connection",
    "Try again in a few moments",
    "Contact support if the problem persists",
)


def get_suggested_actions(error: str) -> list[str]:
    for rule in ACTION_RULES:
        if rule.matches(error):
            return rule.render(error)
    return list(DEFAULT_ACTIONS)


# ── Bundled translation ──────────────────────────────────────

@dataclass
class TranslatedError:
    token: str
    message: str
    recoverable: bool
    actions: list[str] = field(default_factory=list)


def translate(payload: Union[dict, str, bytes, None]) -> TranslatedError:
    token = parse_fault(payload)
    return TranslatedError(
        token=token,
        message=get_user_friendly_error(token),
        recoverable=is_recoverable_error(token),
        actions=get_suggested_actions(token),
    )


def translate_exception(exc: BaseException) -> TranslatedError:
    """Translate a raised error, using a TaxonomyError's fault body if it has one."""
    if isinstance(exc, TaxonomyError):
        body = _coerce_payload(exc.body)
        if isinstance(body, dict) and body.get("errors"):
            return translate(body)
    return translate(str(exc) or type(exc).__name__)
