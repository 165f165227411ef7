"""
Element tree renderer.

Interprets a JSON element document (a list of root elements, see
``models.elements``) into a tree of ``ViewNode`` objects. A ``RenderSession``
owns the live state of one screen: the variable store, the selection-group
state driven by ``toggle`` actions and the intents (navigate, link, dismiss,
tap) reported back to the host.

Rendering never raises for a bad document. Each element is built inside an
isolating boundary; a failure replaces that subtree with an ``error`` node and
leaves its siblings alone. Tapping never raises either: each action runs on its
own and a failing one is logged and skipped.
"""
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from html import escape
from typing import Any
import logging

from services.conditions import evaluate_condition, resolve_destination, resolve_template
from services.styles import convert_style, to_css_declarations

logger = logging.getLogger(__name__)

ASSET_PREFIX = "asset:"
DEFAULT_BACKGROUND = "#FFFFFF"
SELECTED_BORDER_COLOR = "#000000"
TOGGLE_BORDER_WIDTH = "2px"
DEFAULT_ICON_LIBRARY = "lucide"


class ElementType(str, Enum):
    VSTACK = "vstack"
    HSTACK = "hstack"
    ZSTACK = "zstack"
    SCROLLVIEW = "scrollview"
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    LOTTIE = "lottie"
    ICON = "icon"
    INPUT = "input"
    SPACER = "spacer"
    DIVIDER = "divider"

    @classmethod
    def parse(cls, value: Any) -> "ElementType | None":
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_container(self) -> bool:
        return self in CONTAINER_TYPES


CONTAINER_TYPES = frozenset({ElementType.VSTACK, ElementType.HSTACK, ElementType.ZSTACK, ElementType.SCROLLVIEW})

# Types written by older builder versions; rendered as styled text
LEGACY_TEXT_TYPES = {"button": "Button", "heading": "Heading"}

ACTION_TYPES = ("tap", "navigate", "link", "toggle", "dismiss", "set_variable")


@dataclass
class ViewNode:
    """One node of the rendered view tree."""
    kind: str
    element_id: str | None = None
    style: dict[str, Any] = field(default_factory=dict)
    children: list["ViewNode"] = field(default_factory=list)
    text: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict)
    on_tap: Callable[[], None] | None = field(default=None, repr=False, compare=False)

    def find(self, element_id: str) -> "ViewNode | None":
        if self.element_id == element_id:
            return self
        for child in self.children:
            found = child.find(element_id)
            if found is not None:
                return found
        return None

    def path_to(self, element_id: str) -> "list[ViewNode] | None":
        """Nodes from this one down to the node with this id, both ends included."""
        if self.element_id == element_id:
            return [self]
        for child in self.children:
            path = child.path_to(element_id)
            if path is not None:
                return [self, *path]
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind, "style": self.style}
        if self.element_id is not None:
            data["id"] = self.element_id
        if self.text is not None:
            data["text"] = self.text
        if self.attrs:
            data["attrs"] = self.attrs
        if self.on_tap is not None:
            data["tappable"] = True
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data

    def to_html(self) -> str:
        attributes = [f'style="{escape(to_css_declarations(self.style))}"'] if self.style else []
        if self.element_id is not None:
            attributes.append(f'data-element-id="{escape(self.element_id)}"')
        if self.kind == "error":
            attributes.append('role="alert"')

        if self.kind in ("image", "video", "input"):
            tag = {"image": "img", "video": "video", "input": "input"}[self.kind]
            for key, value in self.attrs.items():
                if isinstance(value, bool):
                    if value:
                        attributes.append(escape(key))
                elif value is not None:
                    attributes.append(f'{escape(key)}="{escape(str(value))}"')
            opening = " ".join([tag, *attributes])
            if tag == "video":
                return f"<{opening}></video>"
            return f"<{opening} />"

        inner = escape(self.text) if self.text is not None else ""
        inner += "".join(child.to_html() for child in self.children)
        tag = "span" if self.kind == "icon" else "div"
        opening = " ".join([tag, *attributes])
        return f"<{opening}>{inner}</{tag}>"


@dataclass
class Intent:
    """Something the host must act on: screen navigation, external link, dismissal, tap."""
    type: str
    element_id: str
    destination: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "element_id": self.element_id, "destination": self.destination}


class SelectionState:
    """
    Toggle state for one render session.

    Grouped toggles behave like radio buttons: at most one id per group.
    Ungrouped toggles behave like checkboxes.
    """

    def __init__(self):
        self.toggled_ids: set[str] = set()
        self.group_selections: dict[str, str] = {}

    def toggle(self, element_id: str, group: str | None = None):
        if not group:
            if element_id in self.toggled_ids:
                self.toggled_ids.discard(element_id)
            else:
                self.toggled_ids.add(element_id)
            return

        previous = self.group_selections.get(group)
        if previous == element_id:
            return
        if previous:
            self.toggled_ids.discard(previous)
        self.toggled_ids.add(element_id)
        self.group_selections[group] = element_id

    def is_selected(self, element_id: str) -> bool:
        return element_id in self.toggled_ids

    def has_selection(self, group: str) -> bool:
        return bool(self.group_selections.get(group))

    def to_dict(self) -> dict[str, Any]:
        return {"toggled_ids": sorted(self.toggled_ids), "group_selections": dict(self.group_selections)}


def element_actions(element: Mapping) -> list[Mapping]:
    """The single ``action`` (kept for old documents) followed by ``actions``, in order."""
    actions = [element.get("action"), *(element.get("actions") or [])]
    return [action for action in actions if isinstance(action, Mapping)]


def has_toggle(element: Mapping) -> bool:
    return any(action.get("type") == "toggle" for action in element_actions(element))


class RenderSession:
    """
    Live rendering of one screen.

    ``variables`` is the session's store and is mutated in place by
    ``set_variable`` actions; ``on_set_variable`` is called for each write so a
    host can mirror the store. ``on_intent`` receives every ``Intent``.
    """

    def __init__(
        self,
        elements: list | None,
        assets: list | None = None,
        variables: dict[str, Any] | None = None,
        hidden_elements=None,
        on_set_variable: Callable[[str, Any], None] | None = None,
        on_intent: Callable[[Intent], None] | None = None,
        background_color: str = DEFAULT_BACKGROUND,
    ):
        self.elements = elements or []
        self.assets = assets or []
        self.variables = variables if variables is not None else {}
        self.hidden_elements = set(hidden_elements or ())
        self.on_set_variable = on_set_variable
        self.on_intent = on_intent
        self.background_color = background_color
        self.selection = SelectionState()
        self.intents: list[Intent] = []

    # --- host facing ---

    def render(self) -> ViewNode:
        if not self.elements:
            return ViewNode(
                kind="empty",
                style={"width": "100%", "height": "100%", "display": "flex", "alignItems": "center",
                       "justifyContent": "center", "backgroundColor": self.background_color},
                children=[ViewNode(kind="text", text="No elements to render", style={"color": "#999", "fontSize": "14px"})],
            )

        root = ViewNode(
            kind="screen",
            style={"width": "100%", "height": "100%", "backgroundColor": "transparent", "overflow": "hidden",
                   "position": "relative", "display": "flex", "flexDirection": "column"},
        )
        root.children = self._render_children(self.elements)
        return root

    def tap(self, element_id: str) -> bool:
        """
        Tap the rendered element with this id.

        The tap bubbles up to the nearest node with a handler, which runs alone.
        Returns False if the element is absent, sits under a node with
        ``pointerEvents: none``, or nothing on its path handles taps.
        """
        path = self.render().path_to(element_id)
        if path is None:
            logger.debug("tap on %s ignored: not rendered", element_id)
            return False

        if any(node.style.get("pointerEvents") == "none" for node in path):
            logger.debug("tap on %s ignored: pointer events disabled", element_id)
            return False

        handler = next((node for node in reversed(path) if node.on_tap is not None), None)
        if handler is None:
            logger.debug("tap on %s ignored: no handler", element_id)
            return False

        handler.on_tap()
        return True

    def set_variable(self, name: str, value: Any):
        self.variables[name] = value
        if self.on_set_variable is not None:
            self.on_set_variable(name, value)

    def resolve_asset_url(self, url: str | None) -> str | None:
        """Resolve ``asset:<name>`` against the document's assets; other urls pass through."""
        if not url or not isinstance(url, str) or not url.startswith(ASSET_PREFIX):
            return url
        name = url[len(ASSET_PREFIX):]
        for asset in self.assets:
            if asset.get("name") == name and asset.get("data"):
                return asset["data"]
        return url

    # --- actions ---

    def execute_actions(self, element: Mapping):
        """Run every action of the element; a failing action is logged and the rest still run."""
        for action in element_actions(element):
            try:
                self.execute_action(action, element)
            except Exception:
                logger.exception("action %r on element %s failed", action, element.get("id"))

    def execute_action(self, action: Mapping, element: Mapping):
        action_type = action.get("type")
        element_id = element.get("id")

        if action_type not in ACTION_TYPES:
            logger.warning("unknown action type %r on element %s", action_type, element_id)
            return

        if action_type == "set_variable":
            if action.get("variable"):
                self.set_variable(action["variable"], action.get("value"))
        elif action_type == "toggle":
            self.selection.toggle(element_id, action.get("group"))
        elif action_type == "navigate":
            self._report(Intent("navigate", element_id, resolve_destination(action.get("destination"), self.variables)))
        elif action_type == "link":
            if isinstance(action.get("destination"), str) and action["destination"]:
                self._report(Intent("link", element_id, action["destination"]))
        else:
            self._report(Intent(action_type, element_id))

    def _report(self, intent: Intent):
        logger.debug("intent %s from %s -> %s", intent.type, intent.element_id, intent.destination)
        self.intents.append(intent)
        if self.on_intent is not None:
            self.on_intent(intent)

    # --- tree building ---

    def _render_children(self, children: list, default_position: Mapping | None = None) -> list[ViewNode]:
        nodes = []
        for child in children or []:
            node = self._render_element(child, default_position)
            if node is not None:
                nodes.append(node)
        return nodes

    def _render_element(self, element: Any, default_position: Mapping | None = None) -> ViewNode | None:
        try:
            return self._build_element(element, default_position)
        except Exception as e:
            element_id = element.get("id") if isinstance(element, Mapping) else None
            logger.exception("failed to render element %s", element_id)
            return ViewNode(
                kind="error",
                element_id=element_id,
                style={"padding": "20px", "color": "#c00", "fontSize": "14px", "fontFamily": "monospace"},
                text=f"Render Error: {e}",
            )

    def _build_element(self, element: Mapping, default_position: Mapping | None) -> ViewNode | None:
        element_id = element["id"]

        show_if = (element.get("conditions") or {}).get("show_if")
        if show_if and not evaluate_condition(show_if, self.variables):
            return None

        if element_id in self.hidden_elements:
            return None

        style_props = element.get("style") or {}
        props = element.get("props") or {}
        position = element.get("position") or default_position
        style = convert_style(style_props, position)

        if has_toggle(element):
            style.update(self._toggle_overlay(element_id, style_props, style))

        visible_when = element.get("visibleWhen")
        if visible_when:
            style.update(self._visibility_overlay(visible_when))

        node = self._dispatch(element, props, style)

        if element_actions(element):
            node.on_tap = lambda: self.execute_actions(element)
            node.style["cursor"] = "pointer"
            # nested tappables must not also fire their parent
            node.attrs["stopPropagation"] = True

        return node

    def _toggle_overlay(self, element_id: str, style_props: Mapping, style: Mapping) -> dict[str, Any]:
        if self.selection.is_selected(element_id):
            return {"borderWidth": TOGGLE_BORDER_WIDTH, "borderStyle": "solid",
                    "borderColor": style_props.get("borderColor") or SELECTED_BORDER_COLOR, "boxSizing": "border-box"}
        # same box when unselected so selecting does not shift layout
        return {"borderWidth": style.get("borderWidth") or TOGGLE_BORDER_WIDTH, "borderStyle": "solid",
                "borderColor": "transparent", "boxSizing": "border-box"}

    def _visibility_overlay(self, visible_when: Mapping) -> dict[str, Any]:
        should_show = self.selection.has_selection(visible_when.get("group")) == bool(visible_when.get("hasSelection"))
        return {"opacity": 1 if should_show else 0, "pointerEvents": "auto" if should_show else "none",
                "transition": "opacity 0.3s ease"}

    def _dispatch(self, element: Mapping, props: Mapping, style: dict) -> ViewNode:
        element_id = element["id"]
        element_type = ElementType.parse(element.get("type"))

        if element_type is None:
            legacy_default = LEGACY_TEXT_TYPES.get(element.get("type"))
            if legacy_default is not None:
                style.update({"display": "flex", "alignItems": "center", "justifyContent": "center"})
                return ViewNode("text", element_id, style, text=resolve_template(props.get("text") or legacy_default, self.variables))
            return ViewNode("unknown", element_id, style, text=f"Unknown: {element.get('type')}")

        if element_type.is_container:
            return self._container(element_type, element, props, style)

        if element_type is ElementType.TEXT:
            return ViewNode("text", element_id, {"margin": 0, **style}, text=resolve_template(props.get("text") or "Text", self.variables))

        if element_type is ElementType.IMAGE:
            return self._image(element_id, props, style)

        if element_type is ElementType.VIDEO:
            return self._video(element_id, props, style)

        if element_type is ElementType.LOTTIE:
            label = props.get("animationDescription")
            return ViewNode("placeholder", element_id, {"backgroundColor": "#f8f8ff", **style},
                            text=label, attrs={"media": "lottie", "symbol": "✨", "url": self.resolve_asset_url(props.get("url"))})

        if element_type is ElementType.ICON:
            if props.get("emoji"):
                return ViewNode("icon", element_id, {**style, "display": "inline-flex"}, text=props["emoji"])
            library = props.get("library") or DEFAULT_ICON_LIBRARY
            return ViewNode(
                "icon", element_id,
                {"backgroundColor": "#f0f0f0", "borderRadius": "6px", "width": "32px", "height": "32px", **style},
                text=props.get("name") or "●",
                attrs={"library": library, "name": props.get("name"), "title": f"{library}/{props.get('name') or 'icon'}"},
            )

        if element_type is ElementType.INPUT:
            if not any(key in style for key in ("borderWidth", "borderColor", "borderStyle")):
                style["border"] = "none"
            return ViewNode("input", element_id, {"outline": "none", **style},
                            attrs={"type": props.get("type") or "text", "placeholder": props.get("placeholder") or "Enter text..."})

        if element_type is ElementType.DIVIDER:
            return ViewNode("divider", element_id, {"backgroundColor": "#e0e0e0", **style})

        return ViewNode("spacer", element_id, style)

    def _container(self, element_type: ElementType, element: Mapping, props: Mapping, style: dict) -> ViewNode:
        children = element.get("children") or []

        if element_type is ElementType.ZSTACK:
            style.setdefault("position", "relative")
            nodes = self._render_children(children, default_position={"type": "absolute", "top": 0, "left": 0})
            return ViewNode("zstack", element["id"], style, nodes)

        if element_type is ElementType.SCROLLVIEW:
            horizontal = props.get("direction") == "horizontal"
            style.update({"overflowX": "auto" if horizontal else "hidden", "overflowY": "hidden" if horizontal else "auto"})
            return ViewNode("scrollview", element["id"], style, self._render_children(children),
                            attrs={"direction": "horizontal" if horizontal else "vertical"})

        direction = "column" if element_type is ElementType.VSTACK else "row"
        style.update({"display": "flex", "flexDirection": direction})
        return ViewNode(element_type.value, element["id"], style, self._render_children(children))

    def _image(self, element_id: str, props: Mapping, style: dict) -> ViewNode:
        url = self.resolve_asset_url(props.get("url"))
        frame = {"backgroundColor": "#f0f0f0", **style, "overflow": "hidden"}
        if url:
            return ViewNode("image", element_id, frame, attrs={
                "src": url, "alt": props.get("alt") or "Image", "title": props.get("imageDescription") or props.get("alt"),
            })
        slot = props.get("slotNumber")
        label = f"Image {slot}" if slot else props.get("imageDescription")
        return ViewNode("placeholder", element_id, frame, text=label, attrs={"media": "image", "symbol": "🖼️"})

    def _video(self, element_id: str, props: Mapping, style: dict) -> ViewNode:
        url = self.resolve_asset_url(props.get("url"))
        frame = {"backgroundColor": "#1a1a1a", **style, "overflow": "hidden"}
        if url:
            return ViewNode("video", element_id, frame, attrs={
                "src": url, "muted": True, "playsinline": True, "loop": True, "autoplay": True,
            })
        return ViewNode("placeholder", element_id, frame, text=props.get("videoDescription"),
                        attrs={"media": "video", "symbol": "🎬"})


def render(elements: list, **context) -> ViewNode:
    """One-shot render of a document with a fresh session."""
    return RenderSession(elements, **context).render()
