"""
Convert an element's ``style`` and ``position`` into a flat CSS property map.

Keys are camelCase (``backgroundColor``); ``to_css_declarations`` turns the map
into an inline ``style`` attribute for the HTML preview.
"""
from collections.abc import Mapping
from typing import Any
import re

HEX_COLOR = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)
CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Spacing / border side props that AI-authored documents emit individually
SIDE_SPACING = (
    "marginTop", "marginBottom", "marginLeft", "marginRight",
    "paddingTop", "paddingBottom", "paddingLeft", "paddingRight",
)

DEFAULT_ANIMATION_DURATION = 0.3
DEFAULT_ANIMATION_EASING = "ease-in-out"
DEFAULT_GRADIENT_ANGLE = 180


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def px(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}px"


def dimension(value: Any) -> str:
    """Numbers are pixels, strings ("100%", "auto") pass through."""
    return px(value) if _is_number(value) else str(value)


def hex_to_rgb(hex_color: str) -> str:
    match = HEX_COLOR.match(hex_color or "")
    if not match:
        return "0, 0, 0"
    return ", ".join(str(int(part, 16)) for part in match.groups())


def _box(css: dict, prefix: str, value: Any):
    """margin / padding: a number, or {top, right, bottom, left}."""
    if isinstance(value, Mapping):
        for side in ("top", "right", "bottom", "left"):
            css[f"{prefix}{side.capitalize()}"] = px(value.get(side, 0))
    else:
        css[prefix] = px(value)


def _gradient(gradient: Mapping) -> str | None:
    colors = gradient.get("colors") or []
    if not colors:
        return None

    last = max(len(colors) - 1, 1)
    stops = []
    for index, stop in enumerate(colors):
        evenly_spaced = round(index / last * 100)
        if isinstance(stop, str):
            stops.append(f"{stop} {evenly_spaced}%")
        else:
            position = stop.get("position")
            stops.append(f"{stop.get('color')} {evenly_spaced if position is None else position}%")
    color_stops = ", ".join(stops)

    gradient_type = gradient.get("type") or "linear"
    if gradient_type == "linear":
        return f"linear-gradient({gradient.get('angle') or DEFAULT_GRADIENT_ANGLE}deg, {color_stops})"
    if gradient_type == "radial":
        return f"radial-gradient(circle, {color_stops})"
    return None


def apply_position(css: dict, position: Mapping | None):
    if not position:
        return

    css["position"] = position.get("type") or "relative"

    if position.get("type") == "absolute":
        for edge in ("top", "left", "right", "bottom"):
            if position.get(edge) is not None:
                css[edge] = px(position[edge])

        center_x, center_y = position.get("centerX"), position.get("centerY")
        if center_x:
            css["left"] = "50%"
            css["transform"] = "translate(-50%, -50%)" if center_y else "translateX(-50%)"
        if center_y:
            css["top"] = "50%"
            if not center_x:
                css["transform"] = "translateY(-50%)"

    if position.get("zIndex") is not None:
        css["zIndex"] = position["zIndex"]


def convert_style(style: Mapping | None, position: Mapping | None = None) -> dict[str, Any]:
    css: dict[str, Any] = {}
    style = style or {}

    apply_position(css, position)

    # Layout (flexbox)
    if style.get("flex") is not None:
        css["flex"] = style["flex"]
    for key in ("flexDirection", "justifyContent", "alignItems", "overflow", "alignSelf"):
        if style.get(key):
            css[key] = style[key]
    if style.get("gap") is not None:
        css["gap"] = px(style["gap"])
    if style.get("wrap"):
        css["flexWrap"] = "wrap"

    # Spacing
    if style.get("margin") is not None:
        _box(css, "margin", style["margin"])
    if style.get("padding") is not None:
        _box(css, "padding", style["padding"])
    for key in SIDE_SPACING:
        if style.get(key) is not None:
            css[key] = px(style[key])

    # Single-side borders
    for side in ("Top", "Bottom"):
        width = style.get(f"border{side}Width")
        if width is not None:
            css[f"border{side}Width"] = px(width)
            css[f"border{side}Style"] = style.get(f"border{side}Style") or "solid"
        if style.get(f"border{side}Color"):
            css[f"border{side}Color"] = style[f"border{side}Color"]

    # Dimensions
    for key in ("width", "height", "minHeight"):
        if style.get(key) is not None:
            css[key] = dimension(style[key])
    for key in ("maxWidth", "maxHeight"):
        if style.get(key) is not None:
            css[key] = px(style[key])

    # Background: gradient wins over flat colour
    gradient = style.get("backgroundGradient")
    background_image = _gradient(gradient) if isinstance(gradient, Mapping) else None
    if background_image:
        css["backgroundImage"] = background_image
    elif style.get("backgroundColor"):
        css["backgroundColor"] = style["backgroundColor"]

    if style.get("opacity") is not None:
        css["opacity"] = style["opacity"]
    if style.get("hidden"):
        css["display"] = "none"

    # Border
    radius = style.get("borderRadius")
    if isinstance(radius, Mapping):
        for corner in ("topLeft", "topRight", "bottomLeft", "bottomRight"):
            css[f"border{corner[0].upper()}{corner[1:]}Radius"] = px(radius.get(corner, 0))
    elif radius is not None:
        css["borderRadius"] = px(radius)

    if style.get("borderWidth") is not None:
        css["borderWidth"] = px(style["borderWidth"])
        css["borderStyle"] = style.get("borderStyle") or "solid"
    if style.get("borderColor"):
        css["borderColor"] = style["borderColor"]

    # Shadow
    if style.get("shadowColor") and style.get("shadowOpacity") is not None and style.get("shadowRadius") is not None:
        offset_x = style.get("shadowOffsetX") or 0
        offset_y = style.get("shadowOffsetY") or 0
        css["boxShadow"] = (
            f"{px(offset_x)} {px(offset_y)} {px(style['shadowRadius'])} "
            f"rgba({hex_to_rgb(style['shadowColor'])}, {style['shadowOpacity']})"
        )

    # Text
    if style.get("color"):
        css["color"] = style["color"]
    if style.get("fontSize") is not None:
        css["fontSize"] = px(style["fontSize"])
    for key in ("fontFamily", "fontWeight", "textAlign", "textTransform", "textDecoration"):
        if style.get(key):
            css[key] = style[key]
    line_height = style.get("lineHeight")
    if _is_number(line_height):
        # small numbers are multipliers, larger ones are pixel heights
        css["lineHeight"] = px(line_height) if line_height > 4 else line_height
    elif line_height is not None:
        css["lineHeight"] = line_height
    if style.get("letterSpacing") is not None:
        css["letterSpacing"] = px(style["letterSpacing"])

    # Transform
    transform = style.get("transform")
    if isinstance(transform, Mapping):
        parts = []
        if transform.get("translateX"):
            parts.append(f"translateX({px(transform['translateX'])})")
        if transform.get("translateY"):
            parts.append(f"translateY({px(transform['translateY'])})")
        if transform.get("rotate"):
            parts.append(f"rotate({transform['rotate']}deg)")
        if transform.get("scale") is not None:
            parts.append(f"scale({transform['scale']})")
        if parts:
            css["transform"] = " ".join(parts)

    if style.get("blur"):
        css["filter"] = f"blur({px(style['blur'])})"
    if style.get("backdropBlur"):
        css["backdropFilter"] = f"blur({px(style['backdropBlur'])})"

    animation = style.get("animation")
    if isinstance(animation, Mapping) and animation.get("property") and animation["property"] != "none":
        duration = animation.get("duration") or DEFAULT_ANIMATION_DURATION
        easing = animation.get("easing") or DEFAULT_ANIMATION_EASING
        delay = animation.get("delay") or 0
        css["transition"] = f"{animation['property']} {duration}s {easing} {delay}s"

    # Containers that declare flex props lay out as flex
    if "display" not in css and (style.get("flexDirection") or style.get("justifyContent") or style.get("alignItems")):
        css["display"] = "flex"

    return css


def to_css_declarations(css: Mapping[str, Any]) -> str:
    """{'backgroundColor': '#fff', 'zIndex': 2} -> 'background-color: #fff; z-index: 2'"""
    return "; ".join(f"{CAMEL_BOUNDARY.sub('-', key).lower()}: {value}" for key, value in css.items())
