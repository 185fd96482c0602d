"""Aspect auto-detection from free text.

Pure, deterministic extractors that pull structured aspect values (platform,
brand, model, color, genre, size, free-form game name) out of an item title
and optional description. Which extractors run is decided by the category's
family; an extractor only fills an aspect the category schema defines.

Features:
- Longest-keyword-first dictionary lookups (platform, brand, color)
- Free-form name extraction by stripping platform/brand tokens
- Keyword-bucket genre tagging
- Model extraction anchored on the first digit-bearing token
- Clothing size normalization (Large -> L)
"""
import logging
import re
from typing import Callable, Iterable, Optional

from category_intel.families import CLOTHING, ELECTRONICS, VIDEO_GAMES, classify
from category_intel.models import AspectConstraint

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 3


# ── Dictionaries ─────────────────────────────────────────────

PLATFORM_KEYWORDS = {
    "gba": "Nintendo Game Boy Advance",
    "game boy advance": "Nintendo Game Boy Advance",
    "gameboy advance": "Nintendo Game Boy Advance",
    "game boy color": "Nintendo Game Boy Color",
    "gbc": "Nintendo Game Boy Color",
    "game boy": "Nintendo Game Boy",
    "gameboy": "Nintendo Game Boy",
    "nintendo ds": "Nintendo DS",
    "ds": "Nintendo DS",
    "nintendo 3ds": "Nintendo 3DS",
    "3ds": "Nintendo 3DS",
    "nintendo 64": "Nintendo 64",
    "n64": "Nintendo 64",
    "snes": "Super Nintendo",
    "super nintendo": "Super Nintendo",
    "nes": "Nintendo NES",
    "gamecube": "Nintendo GameCube",
    "wii u": "Nintendo Wii U",
    "wii": "Nintendo Wii",
    "nintendo switch": "Nintendo Switch",
    "switch": "Nintendo Switch",
    "playstation": "Sony PlayStation",
    "ps1": "Sony PlayStation",
    "ps2": "Sony PlayStation 2",
    "playstation 2": "Sony PlayStation 2",
    "ps3": "Sony PlayStation 3",
    "playstation 3": "Sony PlayStation 3",
    "ps4": "Sony PlayStation 4",
    "playstation 4": "Sony PlayStation 4",
    "ps5": "Sony PlayStation 5",
    "playstation 5": "Sony PlayStation 5",
    "psp": "Sony PSP",
    "ps vita": "Sony PlayStation Vita",
    "xbox": "Microsoft Xbox",
    "xbox 360": "Microsoft Xbox 360",
    "xbox one": "Microsoft Xbox One",
    "xbox series x": "Microsoft Xbox Series X",
    "sega genesis": "Sega Genesis",
    "dreamcast": "Sega Dreamcast",
}

# Maker names stripped from free-form names along with platform keywords.
PLATFORM_MAKERS = ("nintendo", "sony", "microsoft", "sega")

BRAND_KEYWORDS = {
    "apple": "Apple",
    "samsung": "Samsung",
    "sony": "Sony",
    "nintendo": "Nintendo",
    "microsoft": "Microsoft",
    "google": "Google",
    "amazon": "Amazon",
    "nike": "Nike",
    "adidas": "Adidas",
    "polo": "Polo",
    "ralph lauren": "Ralph Lauren",
    "tommy hilfiger": "Tommy Hilfiger",
    "tommy": "Tommy",
    "calvin klein": "Calvin Klein",
    "gap": "Gap",
    "old navy": "Old Navy",
    "levi's": "Levi's",
    "levis": "Levi's",
    "hp": "HP",
    "dell": "Dell",
    "lenovo": "Lenovo",
    "asus": "ASUS",
    "acer": "Acer",
    "lg": "LG",
    "panasonic": "Panasonic",
    "canon": "Canon",
    "nikon": "Nikon",
    "gopro": "GoPro",
    "beats": "Beats",
    "bose": "Bose",
    "jbl": "JBL",
    "motorola": "Motorola",
    "oneplus": "OnePlus",
}

COLOR_PALETTE = [
    "black", "white", "red", "blue", "green", "yellow", "orange", "purple",
    "pink", "brown", "gray", "grey", "silver", "gold", "rose gold", "space gray",
    "navy", "beige",
]

GENRE_BUCKETS = [
    ("Action", ["action", "fighting", "shooter", "combat", "battle"]),
    ("Adventure", ["adventure", "quest", "exploration", "journey"]),
    ("RPG", ["rpg", "role playing", "fantasy", "magic", "pokemon"]),
    ("Sports", ["sports", "football", "basketball", "soccer", "nfl", "nba", "fifa", "madden"]),
    ("Strategy", ["strategy", "tactical", "civilization", "war", "empire"]),
    ("Puzzle", ["puzzle", "brain", "logic", "tetris", "sudoku"]),
    ("Simulation", ["simulation", "sim", "tycoon", "city", "farm"]),
    ("Racing", ["racing", "driving", "cars", "speed", "formula", "kart"]),
]

MODEL_QUALIFIERS = {
    "pro", "max", "plus", "ultra", "mini", "lite", "air", "se", "xl", "edge",
    "fold", "flip", "fe",
}

# Words that never belong to a model name.
MODEL_FILLER = {
    "new", "used", "sealed", "for", "with", "and", "the", "a", "an", "of",
    "parts", "broken", "unlocked", "locked", "genuine", "original", "oem",
    "men's", "women's", "kids", "size",
}

SIZE_WORDS = {
    "xx-small": "XXS", "xxs": "XXS",
    "x-small": "XS", "xsmall": "XS", "extra small": "XS", "xs": "XS",
    "small": "S", "s": "S",
    "medium": "M", "m": "M",
    "large": "L", "l": "L",
    "x-large": "XL", "xlarge": "XL", "extra large": "XL", "xl": "XL",
    "xx-large": "XXL", "xxlarge": "XXL", "xxl": "XXL", "2xl": "XXL",
    "xxx-large": "XXXL", "xxxl": "XXXL", "3xl": "XXXL",
}

_DIGIT_RUN = re.compile(r"[A-Za-z0-9-]*\d[A-Za-z0-9-]*")
_STORAGE_TOKEN = re.compile(r"^\d+(?:gb|tb|mb)$", re.IGNORECASE)


# ── Matching helpers ─────────────────────────────────────────

def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    """Alternation of keywords, longest first, bounded by non-alphanumerics."""
    ordered = sorted(set(keywords), key=len, reverse=True)
    body = "|".join(re.escape(k) for k in ordered)
    return re.compile(rf"(?<![a-z0-9])(?:{body})(?![a-z0-9])", re.IGNORECASE)


def _longest_match(text: str, table: dict[str, str]) -> Optional[str]:
    """Canonical value of the longest dictionary key found in text."""
    lowered = text.lower()
    for key in sorted(table, key=len, reverse=True):
        if re.search(rf"(?<![a-z0-9]){re.escape(key)}(?![a-z0-9])", lowered):
            return table[key]
    return None


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(word)}(?![a-z0-9])", text) is not None


_PLATFORM_STRIP = _keyword_pattern(list(PLATFORM_KEYWORDS) + list(PLATFORM_MAKERS))
_BRAND_STRIP = _keyword_pattern(BRAND_KEYWORDS)
_SIZE_AFTER_LABEL = re.compile(
    r"\bsize\s*[:\-]?\s*("
    + "|".join(re.escape(w) for w in sorted(SIZE_WORDS, key=len, reverse=True))
    + r"|\d{1,2}(?:\.5)?)(?![a-z0-9])",
    re.IGNORECASE,
)
_STANDALONE_SIZE = re.compile(r"(?<![a-z0-9])(xxxl|xxl|xl|xs|[23]xl)(?![a-z0-9])", re.IGNORECASE)


def _collapse(text: str) -> str:
    text = re.sub(r"\s+", " ", text).strip()
    return text.strip(" -,/|:")


# ── Extractors ───────────────────────────────────────────────

def detect_platform(title: str, description: str = "") -> Optional[str]:
    return _longest_match(title, PLATFORM_KEYWORDS)


def extract_game_name(title: str, description: str = "") -> Optional[str]:
    """Title with platform and maker tokens removed.

    Falls back to the untouched title when the remainder is too short to be
    a usable name.
    """
    if not title.strip():
        return None
    cleaned = _collapse(_PLATFORM_STRIP.sub(" ", title))
    if len(cleaned) < MIN_NAME_LENGTH:
        return title.strip()
    return cleaned


def detect_genre(title: str, description: str = "") -> Optional[str]:
    text = f"{title} {description}".lower()
    for genre, triggers in GENRE_BUCKETS:
        if any(_has_word(text, t) for t in triggers):
            return genre
    return None


def detect_brand(title: str, description: str = "") -> Optional[str]:
    return _longest_match(title, BRAND_KEYWORDS)


def detect_color(title: str, description: str = "") -> Optional[str]:
    lowered = title.lower()
    for color in sorted(COLOR_PALETTE, key=len, reverse=True):
        if _has_word(lowered, color):
            return color.title()
    return None


def _is_model_word(word: str) -> bool:
    lowered = word.lower()
    if not word.isalpha() or lowered in MODEL_FILLER:
        return False
    if _BRAND_STRIP.fullmatch(lowered) or lowered in COLOR_PALETTE:
        return False
    return True


def extract_model(title: str, description: str = "") -> Optional[str]:
    """Model phrase around the first alphanumeric run containing a digit.

    Only the matched run of a word is kept ("S21+" -> "S21", "12.9" -> "12").
    Up to two product-line words before the anchor and any trailing
    qualifiers (Pro, Max, ...) are kept: "Apple iPhone 12 Pro Max 256GB"
    gives "iPhone 12 Pro Max".
    """
    words = [w.strip(",;()[]") for w in title.split()]
    words = [w for w in words if w]
    anchor = None
    for i, word in enumerate(words):
        m = _DIGIT_RUN.search(word)
        if m and not _STORAGE_TOKEN.match(m.group(0)):
            anchor, token = i, m.group(0)
            break
    if anchor is None:
        return None

    start = anchor
    while start > 0 and anchor - start < 2 and _is_model_word(words[start - 1]):
        start -= 1
    end = anchor + 1
    while end < len(words) and words[end].lower() in MODEL_QUALIFIERS:
        end += 1
    return " ".join(words[start:anchor] + [token] + words[anchor + 1:end])


def detect_size(title: str, description: str = "") -> Optional[str]:
    m = _SIZE_AFTER_LABEL.search(title)
    if m:
        raw = m.group(1).lower()
        return SIZE_WORDS.get(raw, raw.upper())
    m = _STANDALONE_SIZE.search(title)
    if m:
        return SIZE_WORDS[m.group(1).lower()]
    return None


# ── Family pipelines ─────────────────────────────────────────

Extractor = Callable[[str, str], Optional[str]]

FAMILY_EXTRACTORS: dict[str, list[tuple[str, Extractor]]] = {
    VIDEO_GAMES: [
        ("Platform", detect_platform),
        ("Game Name", extract_game_name),
        ("Genre", detect_genre),
    ],
    ELECTRONICS: [
        ("Brand", detect_brand),
        ("Model", extract_model),
        ("Color", detect_color),
    ],
    CLOTHING: [
        ("Brand", detect_brand),
        ("Size", detect_size),
        ("Color", detect_color),
    ],
}


class AspectAutoDetector:
    """Runs the family's extractors against a title and description."""

    def __init__(self, extractors: Optional[dict[str, list[tuple[str, Extractor]]]] = None):
        self.extractors = FAMILY_EXTRACTORS if extractors is None else extractors

    def detect(
        self,
        category_id: str,
        title: str,
        description: str = "",
        aspects: Iterable[AspectConstraint] = (),
        category_path: str = "",
    ) -> dict[str, list[str]]:
        """Auto-detect aspect values for one category.

        Args:
            category_id: Category the item would be listed under.
            title: Item title.
            description: Optional free-text description.
            aspects: The category's aspect schema; only these names are filled.
            category_path: Display/ancestry name, used for family lookup.

        Returns:
            Mapping of aspect name to a single-element value list. Empty when
            the category belongs to no supported family.
        """
        family = classify(category_id, category_path)
        if family is None or family not in self.extractors:
            logger.debug("No detection family for category %s", category_id)
            return {}

        names = {a.name for a in aspects}
        detected: dict[str, list[str]] = {}
        for aspect_name, extractor in self.extractors[family]:
            if aspect_name not in names:
                continue
            value = extractor(title, description or "")
            if value:
                detected[aspect_name] = [value]
                logger.debug("Auto-detected %s=%r for category %s", aspect_name, value, category_id)

        logger.info(
            "Auto-detected %d aspects for category %s (%s): %s",
            len(detected), category_id, family, list(detected),
        )
        return detected
