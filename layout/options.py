"""Layered layout options.

Options are resolved per scope by merging override layers over a base
``LayoutOptions``: call-level options, then table-level overrides, then
block-level overrides.  Override layers are flat mappings using the
option names below; per-row-type styling keys are prefixed with
``headings_`` or ``row_`` (``headings_font``, ``row_text_colors``, ...).

Available options
-----------------
* ``page_width`` / ``page_height`` – page size in points.
* ``table_margin`` – margin added to every side; ``table_margin_left``,
  ``table_margin_right``, ``table_margin_top``, ``table_margin_bottom``
  add per-side margins on top of it.
* ``default_font`` – font used when a row type has no font of its own.
* ``title_font``, ``title_text_color``, ``title_background_color``,
  ``title_text_alignment``, ``title_padding`` – title styling.
* ``<type>_font``, ``<type>_text_color_default``, ``<type>_text_colors``,
  ``<type>_background_color_default``, ``<type>_background_colors``,
  ``<type>_blackout_color``, ``<type>_text_alignment`` – styling for
  ``headings`` and ``row`` cells.  The plural forms are per-column lists.
* ``border_color`` / ``border_width`` – cell borders.
* ``page_break_on_new_table``, ``show_title_after_page_break``,
  ``show_headings_after_page_break`` – flow behaviour.
* ``padding`` – cell padding; ``spacing`` – space left after each table.
* ``y_initial`` – starting y position for the first table.
* ``break_for_min_width_on`` – single characters on which cell text may
  wrap, used to find a column's narrowest possible width.
* ``column_width_restrictions`` – ``{"fitted": [...], "minimum": {...},
  "maximum": {...}}``.  ``fitted`` is either a boolean mask
  (``[true, false, true]``) or a list of column indexes; ``minimum`` and
  ``maximum`` map a column index to a width in points.  The mapping is
  replaced as a whole when overridden.
* ``x_start``, ``y_start``, ``y_end`` – pin the derived geometry.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .errors import InvalidConstraintError
from .models import Color, FontSpec, RowStyle, RowType, WidthConstraints, coerce_color

logger = logging.getLogger(__name__)

# Override-key prefix -> LayoutOptions attribute holding that row type's style.
_ROW_STYLE_PREFIXES: Dict[str, str] = {
    "headings_": "headings",
    "row_": "row",
}

_ROW_STYLE_FIELDS = frozenset(f.name for f in fields(RowStyle))

# Derived by ``_expand_geometry``; never taken from override layers.
_DERIVED_FIELDS = frozenset({"table_width", "x_stop"})


@dataclass
class LayoutOptions:
    """Effective configuration for one table or block."""

    page_width: float = 612.0
    page_height: float = 792.0
    table_margin: float = 0.0
    table_margin_left: float = 0.0
    table_margin_right: float = 0.0
    table_margin_top: float = 0.0
    table_margin_bottom: float = 0.0
    default_font: FontSpec = field(default_factory=FontSpec)
    title_font: FontSpec = field(default_factory=lambda: FontSpec("helv", 18.0))
    title_text_color: Optional[Color] = (1.0, 1.0, 1.0)
    title_background_color: Optional[Color] = (0.0, 0.0, 1.0)
    title_text_alignment: str = "center"
    title_padding: float = 0.0
    headings: RowStyle = field(default_factory=RowStyle)
    row: RowStyle = field(default_factory=RowStyle)
    border_color: Optional[Color] = (0.0, 0.0, 0.0)
    border_width: float = 1.0
    page_break_on_new_table: bool = False
    show_title_after_page_break: bool = True
    show_headings_after_page_break: bool = True
    column_width_restrictions: WidthConstraints = field(default_factory=WidthConstraints)
    padding: float = 0.0
    spacing: float = 0.0
    y_initial: Optional[float] = None
    break_for_min_width_on: List[str] = field(default_factory=lambda: [",", "/", " "])
    # Derived geometry.
    table_width: Optional[float] = None
    x_start: Optional[float] = None
    x_stop: Optional[float] = None
    y_start: Optional[float] = None
    y_end: Optional[float] = None

    def style_for(self, row_type: RowType) -> RowStyle:
        return self.headings if row_type is RowType.HEADING else self.row

    def font_for(self, row_type: RowType) -> FontSpec:
        return self.style_for(row_type).font or self.default_font

    def clone(self) -> "LayoutOptions":
        """Return an independent copy; mutating it never affects ``self``."""
        restrictions = self.column_width_restrictions
        return replace(
            self,
            headings=self.headings.copy(),
            row=self.row.copy(),
            column_width_restrictions=WidthConstraints(
                fitted=frozenset(restrictions.fitted),
                minimum=dict(restrictions.minimum),
                maximum=dict(restrictions.maximum),
            ),
            break_for_min_width_on=list(self.break_for_min_width_on),
        )

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping[str, Any]] = None) -> "LayoutOptions":
        """Build options from built-in defaults plus one flat override mapping."""
        opts = cls()
        if overrides:
            apply_overrides(opts, overrides)
        return opts


# ------------------------------------------------------------------
# Value coercion
# ------------------------------------------------------------------

def coerce_constraints(value: Any) -> WidthConstraints:
    """Build ``WidthConstraints`` from a mapping, filling missing sub-keys."""
    if isinstance(value, WidthConstraints):
        return value
    value = value or {}

    raw_fitted = value.get("fitted") or []
    if all(isinstance(f, bool) for f in raw_fitted):
        fitted = frozenset(idx for idx, flag in enumerate(raw_fitted) if flag)
    else:
        fitted = frozenset(int(idx) for idx in raw_fitted)

    return WidthConstraints(
        fitted=fitted,
        minimum={int(k): float(v) for k, v in (value.get("minimum") or {}).items()},
        maximum={int(k): float(v) for k, v in (value.get("maximum") or {}).items()},
    )


def _color_list(value: Optional[Iterable[Any]]) -> List[Optional[Color]]:
    return [coerce_color(c) for c in (value or [])]


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "page_width": float,
    "page_height": float,
    "table_margin": float,
    "table_margin_left": float,
    "table_margin_right": float,
    "table_margin_top": float,
    "table_margin_bottom": float,
    "default_font": FontSpec.coerce,
    "title_font": FontSpec.coerce,
    "title_text_color": coerce_color,
    "title_background_color": coerce_color,
    "title_padding": float,
    "border_color": coerce_color,
    "border_width": float,
    "page_break_on_new_table": bool,
    "show_title_after_page_break": bool,
    "show_headings_after_page_break": bool,
    "column_width_restrictions": coerce_constraints,
    "padding": float,
    "spacing": float,
    "y_initial": _optional_float,
    "break_for_min_width_on": lambda chars: [str(c) for c in chars],
    "x_start": _optional_float,
    "y_start": _optional_float,
    "y_end": _optional_float,
}

_ROW_STYLE_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "font": FontSpec.coerce,
    "text_color_default": coerce_color,
    "text_colors": _color_list,
    "background_color_default": coerce_color,
    "background_colors": _color_list,
    "blackout_color": coerce_color,
}


def _apply_row_style_key(opts: LayoutOptions, key: str, value: Any) -> bool:
    for prefix, attr in _ROW_STYLE_PREFIXES.items():
        if not key.startswith(prefix):
            continue
        style_field = key[len(prefix):]
        if style_field not in _ROW_STYLE_FIELDS:
            return False
        coerce = _ROW_STYLE_COERCERS.get(style_field)
        setattr(getattr(opts, attr), style_field, coerce(value) if coerce else value)
        return True
    return False


def apply_overrides(opts: LayoutOptions, overrides: Mapping[str, Any]) -> LayoutOptions:
    """Apply one flat override layer to *opts* in place and return it."""
    for key, value in overrides.items():
        if key in _DERIVED_FIELDS:
            logger.warning("Option '%s' is derived from the page geometry; ignoring.", key)
            continue
        if _apply_row_style_key(opts, key, value):
            continue
        if key in ("headings", "row") or not hasattr(opts, key):
            logger.warning("Unknown layout option '%s' — ignoring.", key)
            continue
        coerce = _COERCERS.get(key)
        setattr(opts, key, coerce(value) if coerce else value)
    return opts


# ------------------------------------------------------------------
# Geometry and validation
# ------------------------------------------------------------------

def _expand_geometry(opts: LayoutOptions) -> None:
    margin = opts.table_margin
    left = opts.table_margin_left + margin
    right = opts.table_margin_right + margin
    top = opts.table_margin_top + margin
    bottom = opts.table_margin_bottom + margin

    opts.table_width = opts.page_width - left - right
    if opts.y_start is None:
        opts.y_start = opts.page_height - top
    if opts.x_start is None:
        opts.x_start = left
    if opts.y_end is None:
        opts.y_end = bottom
    opts.x_stop = opts.page_width - right


def validate_constraints(constraints: WidthConstraints) -> None:
    """Raise ``InvalidConstraintError`` for self-contradicting restrictions."""
    for idx in sorted(constraints.fitted):
        if idx in constraints.minimum or idx in constraints.maximum:
            raise InvalidConstraintError(
                idx, "a fitted column cannot also carry a minimum or maximum"
            )
    for idx, minimum in sorted(constraints.minimum.items()):
        maximum = constraints.maximum.get(idx)
        if maximum is not None and minimum > maximum:
            raise InvalidConstraintError(
                idx, f"minimum {minimum:g} exceeds maximum {maximum:g}"
            )


def resolve_options(
    defaults: LayoutOptions,
    table_overrides: Optional[Mapping[str, Any]] = None,
    block_overrides: Optional[Mapping[str, Any]] = None,
    *,
    expand_margins: bool = True,
) -> LayoutOptions:
    """Merge override layers over *defaults* into a new ``LayoutOptions``.

    Args:
        defaults: Base options; never modified.
        table_overrides: Flat overrides for the table scope.
        block_overrides: Flat overrides for the block scope.
        expand_margins: Derive ``table_width`` and the start/stop
            coordinates from the margins.  Disabled when re-applying
            block overrides so page geometry is left as resolved for the
            table.

    Returns:
        The effective options for the scope.

    Raises:
        InvalidConstraintError: If the resulting column width
            restrictions contradict each other.
    """
    opts = defaults.clone()
    for layer in (table_overrides, block_overrides):
        if layer:
            apply_overrides(opts, layer)

    if expand_margins:
        _expand_geometry(opts)

    validate_constraints(opts.column_width_restrictions)
    return opts
