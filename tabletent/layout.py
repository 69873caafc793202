import dataclasses
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import yaml

from .errors import InvalidLayout

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
LAYOUT_PATH = os.path.join(BASE_DIR, "config_layout.yml")


@dataclass(frozen=True)
class LayoutConfig:
    """
    Page geometry and copy for the table-tent cards.

    Lengths are millimetres except border_radius and font sizes, which
    are points. A4 portrait by default.
    """

    num_pages: int = 10
    page_width: float = 210
    page_height: float = 297
    page_content_padding: float = 10
    num_boxes_per_page: int = 2
    box_content_padding: float = 20
    border_radius: float = 3
    body_font_size: float = 16
    title_font_size: float = 40
    small_font_size: float = 13
    text_top_margin: float = 10
    qr_code_size: float = 50
    num_codes_to_collect: int = 3
    headline: str = "Thank you for choosing us!"
    brands: Tuple[str, ...] = (
        "SkewerSpot",
        "The Foodie Kitchen",
        "Oye Hoye! Punjabi Dhaba",
    )
    freebies: Tuple[str, ...] = (
        "Amritsari Mix Naan Plate",
        "Pav Bhaji",
        "Nutri Kulcha Plate",
    )
    brand_logos: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for name in ("num_pages", "num_boxes_per_page", "num_codes_to_collect"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidLayout(f"{name} must be a positive integer")
        for name in NUMERIC_FIELDS:
            if getattr(self, name) < 0:
                raise InvalidLayout(f"{name} must not be negative")
        if self.page_width <= 2 * self.page_content_padding:
            raise InvalidLayout("page_content_padding leaves no room on the page")
        if self.page_height / self.num_boxes_per_page <= 2 * self.page_content_padding:
            raise InvalidLayout("too many boxes for the page height")

    @property
    def box_height(self) -> float:
        return self.page_height / self.num_boxes_per_page

    def with_overrides(self, overrides: Dict, allowed=None) -> "LayoutConfig":
        """
        Return a copy with `overrides` applied. Unknown keys, and keys
        outside `allowed` when given, raise InvalidLayout; numeric strings
        (e.g. from query args) are converted.
        """
        changes = {}
        for key, raw in overrides.items():
            if key not in FIELD_TYPES:
                raise InvalidLayout(f"unknown layout option: {key}")
            if allowed is not None and key not in allowed:
                raise InvalidLayout(f"layout option not allowed here: {key}")
            changes[key] = _coerce(key, raw)
        return dataclasses.replace(self, **changes)


FIELD_TYPES = {f.name: f.type for f in dataclasses.fields(LayoutConfig)}
INTEGER_FIELDS = ("num_pages", "num_boxes_per_page", "num_codes_to_collect")
NUMERIC_FIELDS = tuple(
    name for name, kind in FIELD_TYPES.items() if kind in (int, float)
)
# filesystem paths; only settable from the layout file
PATH_FIELDS = ("brand_logos",)
REQUEST_OPTIONS = tuple(name for name in FIELD_TYPES if name not in PATH_FIELDS)


def _coerce(key, raw):
    if key in INTEGER_FIELDS:
        if isinstance(raw, float) and not raw.is_integer():
            raise InvalidLayout(f"{key} must be an integer")
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise InvalidLayout(f"{key} must be an integer") from None
    if key in NUMERIC_FIELDS:
        try:
            return float(raw)
        except (TypeError, ValueError):
            raise InvalidLayout(f"{key} must be a number") from None
    if key == "headline":
        return str(raw)
    if isinstance(raw, str):
        return tuple(part.strip() for part in raw.split(",") if part.strip())
    return tuple(raw)


def required_codes(layout: LayoutConfig) -> int:
    return layout.num_pages * layout.num_boxes_per_page


def load_layout(path: Optional[str] = None) -> LayoutConfig:
    path = path or LAYOUT_PATH
    if not os.path.exists(path):
        return LayoutConfig()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return LayoutConfig().with_overrides(data.get("LAYOUT", {}) or {})
