from dataclasses import dataclass

from errors import ValidationError
from logging_setup import get_logger

logger = get_logger(__name__)

HANDLES = ("left", "right", "top", "bottom", "corner")
POINTER_EVENTS = ("move", "up", "cancel")
MIN_SIZE = 10


class PointerEventSource:
    """Registry of pointer listeners keyed by event name."""

    def __init__(self):
        self._listeners: dict[str, list] = {name: [] for name in POINTER_EVENTS}

    def add_listener(self, event: str, fn):
        if event not in self._listeners:
            raise ValidationError(f"Unknown pointer event: {event}")
        self._listeners[event].append(fn)

    def remove_listener(self, event: str, fn):
        listeners = self._listeners.get(event, [])
        if fn in listeners:
            listeners.remove(fn)

    def dispatch(self, event: str, pointer=None):
        # copy: a listener may deregister itself mid-dispatch
        for fn in list(self._listeners.get(event, [])):
            fn(pointer)

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(v) for v in self._listeners.values())


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Armed:
    direction: str


@dataclass(frozen=True)
class Dragging:
    direction: str
    last_pointer: tuple[int, int]
    current_size: tuple[int, int]  # (width, height)


def _resized(direction: str, size: tuple[int, int], dx: int, dy: int) -> tuple[int, int]:
    width, height = size
    if direction in ("right", "corner"):
        width += dx
    if direction in ("bottom", "corner"):
        height += dy
    if direction == "left":
        width -= dx
    if direction == "top":
        height -= dy
    return max(MIN_SIZE, width), max(MIN_SIZE, height)


class ResizeInteraction:
    """Pointer-driven resize of the selected cell.

    Idle -> Armed(direction) by tapping a handle while drag mode is on,
    Armed -> Dragging on pointer-down, Dragging -> Idle on pointer-up or
    cancel. Move/up/cancel listeners live only for the length of a session.
    """

    def __init__(self, sizes, events: PointerEventSource | None = None):
        self.sizes = sizes
        self.events = events or PointerEventSource()
        self.state = Idle()
        self.drag_mode_enabled = False
        self.selected = None
        self._session = []

    # ---------- queries ----------
    @property
    def armed_handle(self) -> str | None:
        if isinstance(self.state, (Armed, Dragging)):
            return self.state.direction
        return None

    @property
    def is_dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    # ---------- transitions ----------
    def select_cell(self, r: int, c: int):
        self._end_session("select")
        self.state = Idle()
        self.selected = (r, c)

    def clear_selection(self):
        self._end_session("deselect")
        self.state = Idle()
        self.selected = None

    def toggle_drag_mode(self) -> bool:
        self.drag_mode_enabled = not self.drag_mode_enabled
        if not self.drag_mode_enabled:
            self._end_session("drag mode off")
            self.state = Idle()
        return self.drag_mode_enabled

    def reset(self):
        """Drag mode off and nothing armed."""
        self._end_session("reset")
        self.drag_mode_enabled = False
        self.state = Idle()

    def tap_handle(self, direction: str):
        if direction not in HANDLES:
            raise ValidationError(f"Handle must be one of {', '.join(HANDLES)}")
        if not self.drag_mode_enabled or self.selected is None:
            return self.state
        if isinstance(self.state, Dragging):
            return self.state
        if isinstance(self.state, Armed) and self.state.direction == direction:
            self.state = Idle()
        else:
            self.state = Armed(direction)
        return self.state

    def pointer_down(self, direction: str, pointer: tuple[int, int]) -> bool:
        if not self.drag_mode_enabled or self.selected is None:
            return False
        if not isinstance(self.state, Armed) or self.state.direction != direction:
            return False

        r, c = self.selected
        self.state = Dragging(direction, tuple(pointer), self.sizes.size_for(r, c))
        self._session = [
            ("move", self._on_move),
            ("up", self._on_up),
            ("cancel", self._on_cancel),
        ]
        for event, fn in self._session:
            self.events.add_listener(event, fn)
        logger.info("drag %s started on %s", direction, self.selected)
        return True

    def press_handle(self, direction: str, pointer: tuple[int, int] | None = None):
        """Mouse press on a handle.

        A bare click (no pointer) toggles the handle like a key tap. A press
        arms the handle when needed and starts dragging; the release that
        follows ends the session in Idle, so press and release disarms too.
        """
        if pointer is None:
            return self.tap_handle(direction)
        if self.armed_handle != direction:
            self.tap_handle(direction)
        self.pointer_down(direction, pointer)
        return self.state

    def pointer_move(self, pointer):
        self.events.dispatch("move", pointer)

    def pointer_up(self, pointer=None):
        self.events.dispatch("up", pointer)

    def cancel(self):
        self.events.dispatch("cancel", None)

    def dispose(self):
        self._end_session("dispose")
        self.state = Idle()

    # ---------- drag pad ----------
    def virtual_drag(self, dx: int, dy: int):
        if self.selected is None:
            return None
        r, c = self.selected
        width, height = self.sizes.size_for(r, c)
        width = max(MIN_SIZE, width + int(dx))
        height = max(MIN_SIZE, height + int(dy))
        return self.sizes.update_size(r, c, height=height, width=width)

    # ---------- listeners ----------
    def _on_move(self, pointer):
        state = self.state
        if not isinstance(state, Dragging) or pointer is None:
            return
        dx = pointer[0] - state.last_pointer[0]
        dy = pointer[1] - state.last_pointer[1]
        width, height = _resized(state.direction, state.current_size, dx, dy)
        r, c = self.selected
        self.sizes.update_size(r, c, height=height, width=width)
        self.state = Dragging(state.direction, tuple(pointer), (width, height))

    def _on_up(self, _pointer):
        self._end_session("pointer up")
        self.state = Idle()

    def _on_cancel(self, _pointer):
        self._end_session("cancel")
        self.state = Idle()

    def _end_session(self, reason: str):
        if not self._session:
            return
        for event, fn in self._session:
            self.events.remove_listener(event, fn)
        self._session = []
        logger.info("drag ended (%s), size %s", reason, getattr(self.state, "current_size", None))

