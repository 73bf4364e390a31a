from dataclasses import dataclass, fields, replace
from typing import Optional

from errors import ValidationError

DEFAULT_WIDTH = 120
DEFAULT_HEIGHT = 24
MIN_FONT_SIZE = 6
MAX_FONT_SIZE = 40
MIN_BORDER_WIDTH = 0
MAX_BORDER_WIDTH = 10

TEXT_ALIGNS = ("left", "center", "right")
VERTICAL_ALIGNS = ("top", "middle", "bottom")
BORDER_STYLES = ("solid", "dashed", "dotted", "double", "none")
BORDER_SIDES = ("border_top", "border_right", "border_bottom", "border_left")


@dataclass(frozen=True)
class StyleRecord:
    """Sparse per-cell style delta. None means "not overridden"."""

    color: Optional[str] = None
    background_color: Optional[str] = None
    text_align: Optional[str] = None
    vertical_align: Optional[str] = None
    wrap: Optional[bool] = None
    font_size: Optional[int] = None
    border_color: Optional[str] = None
    border_style: Optional[str] = None
    border_width: Optional[int] = None
    border_top: Optional[bool] = None
    border_right: Optional[bool] = None
    border_bottom: Optional[bool] = None
    border_left: Optional[bool] = None

    def merged(self, patch: dict) -> "StyleRecord":
        return replace(self, **patch)

    def as_dict(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


STYLE_KEYS = frozenset(f.name for f in fields(StyleRecord))


@dataclass
class WorkspaceDefaults:
    """Workspace-wide border defaults; one instance per open workspace."""

    border_color: str = "#9ca3af"
    border_style: str = "solid"


@dataclass(frozen=True)
class EffectiveStyle:
    color: str = "#000000"
    background_color: str = "#ffffff"
    text_align: str = "left"
    vertical_align: str = "top"
    wrap: bool = False
    font_size: int = 11
    border_color: str = "#e5e7eb"
    border_style: str = "solid"
    border_width: int = 1
    border_top: bool = True
    border_right: bool = True
    border_bottom: bool = True
    border_left: bool = True
    width: Optional[int] = None
    height: Optional[int] = None

    def sides(self) -> dict:
        return {side: getattr(self, side) for side in BORDER_SIDES}


@dataclass(frozen=True)
class SizeRecord:
    height: Optional[int] = None
    width: Optional[int] = None


def _check_patch(patch: dict) -> dict:
    unknown = [k for k in patch if k not in STYLE_KEYS]
    if unknown:
        raise ValidationError(f"Unknown style field: {', '.join(sorted(unknown))}")
    align = patch.get("text_align")
    if align is not None and align not in TEXT_ALIGNS:
        raise ValidationError(f"Alignment must be one of {', '.join(TEXT_ALIGNS)}")
    valign = patch.get("vertical_align")
    if valign is not None and valign not in VERTICAL_ALIGNS:
        raise ValidationError(
            f"Vertical alignment must be one of {', '.join(VERTICAL_ALIGNS)}"
        )
    bstyle = patch.get("border_style")
    if bstyle is not None and bstyle not in BORDER_STYLES:
        raise ValidationError(f"Border style must be one of {', '.join(BORDER_STYLES)}")
    return patch


class StyleOverlay:
    """Maps (row, col) to a StyleRecord. Untouched cells have no entry."""

    def __init__(self):
        self._records: dict[tuple[int, int], StyleRecord] = {}

    def __len__(self):
        return len(self._records)

    def __contains__(self, key):
        return key in self._records

    def get(self, r: int, c: int) -> StyleRecord | None:
        return self._records.get((r, c))

    def update_style(self, r: int, c: int, key, value=None) -> StyleRecord:
        """Patch one field (key, value) or, with key=None, a mapping of fields."""
        if key is None:
            if not isinstance(value, dict):
                raise ValidationError("Style patch must be a mapping of fields")
            patch = dict(value)
        else:
            patch = {key: value}
        _check_patch(patch)
        current = self._records.get((r, c), StyleRecord())
        merged = current.merged(patch)
        self._records[(r, c)] = merged
        return merged

    def effective_style(
        self, r: int, c: int, defaults: WorkspaceDefaults | None = None, size=None
    ) -> EffectiveStyle:
        record = self._records.get((r, c)) or StyleRecord()
        defaults = defaults or WorkspaceDefaults()
        base = EffectiveStyle(
            border_color=defaults.border_color or EffectiveStyle.border_color,
            border_style=defaults.border_style or EffectiveStyle.border_style,
        )
        resolved = replace(base, **record.as_dict())
        if size is not None:
            resolved = replace(resolved, width=size.width, height=size.height)
        return resolved

    def clear(self):
        self._records.clear()


class SizeOverlay:
    """Maps (row, col) to a SizeRecord in pixels."""

    def __init__(self):
        self._records: dict[tuple[int, int], SizeRecord] = {}

    def __len__(self):
        return len(self._records)

    def __contains__(self, key):
        return key in self._records

    def get(self, r: int, c: int) -> SizeRecord | None:
        return self._records.get((r, c))

    def update_size(self, r: int, c: int, height=None, width=None) -> SizeRecord:
        current = self._records.get((r, c), SizeRecord())
        record = SizeRecord(
            height=current.height if height is None else int(height),
            width=current.width if width is None else int(width),
        )
        self._records[(r, c)] = record
        return record

    def size_for(self, r: int, c: int) -> tuple[int, int]:
        """Resolved (width, height), falling back to 120x24 per axis."""
        record = self._records.get((r, c))
        width = record.width if record and record.width else DEFAULT_WIDTH
        height = record.height if record and record.height else DEFAULT_HEIGHT
        return width, height

    def column_width(self, c: int) -> int | None:
        """Widest explicit width set on any cell of column c."""
        widths = [
            rec.width
            for (_, col), rec in self._records.items()
            if col == c and rec.width
        ]
        return max(widths) if widths else None

    def clear(self):
        self._records.clear()


def clamp_font_size(value) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        size = 11
    return max(MIN_FONT_SIZE, min(MAX_FONT_SIZE, size))


def clamp_border_width(value) -> int:
    try:
        width = int(value)
    except (TypeError, ValueError):
        width = 1
    return max(MIN_BORDER_WIDTH, min(MAX_BORDER_WIDTH, width))


def clamp_dimension(value) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        size = 1
    return max(1, size)
