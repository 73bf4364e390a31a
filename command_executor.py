import shlex
import subprocess
from dataclasses import dataclass

from cell_overlay import STYLE_KEYS
from errors import NotFoundError, ValidationError, WorkspaceError, WorkspaceIOError
from logging_setup import get_logger
from resize_interaction import HANDLES
from search_merger import ALL_COLUMNS
from sort_filter import FILTER_STATES, SORT_MODES

logger = get_logger(__name__)

BOOL_WORDS = {"on": True, "true": True, "yes": True, "off": False, "false": False, "no": False}
INT_FIELDS = {"font_size", "border_width"}
BOOL_FIELDS = {"wrap", "border_top", "border_right", "border_bottom", "border_left"}
STYLE_ALIASES = {
    "bg": "background_color",
    "fg": "color",
    "align": "text_align",
    "valign": "vertical_align",
    "font": "font_size",
}
EXPORT_KINDS = ("csv", "png", "pdf", "json")
EXPORT_DEFAULT_NAME = "workspace"

COMMAND_HELP = {
    "load": "load PATH [--all]",
    "search": "search QUERY [COLUMN]",
    "sort": f"sort COLUMN {'|'.join(SORT_MODES)}",
    "filter": f"filter {'|'.join(FILTER_STATES)}",
    "select": "select ROW COL",
    "edit": "edit TEXT",
    "rename": "rename COLUMN TEXT",
    "row": "row add|del",
    "style": "style KEY=VALUE ...",
    "size": "size [w=PX] [h=PX]",
    "all": "all KEY=VALUE ... [w=PX] [h=PX]",
    "border": "border [color=COLOR] [style=STYLE]",
    "hide": "hide COLUMN",
    "show": "show COLUMN",
    "drag": "drag",
    "handle": f"handle {'|'.join(HANDLES)}",
    "pad": "pad DX DY",
    "export": f"export {'|'.join(EXPORT_KINDS)} [NAME]",
    "yank": "yank",
    "clear-formats": "clear-formats",
    "clear": "clear",
    "help": "help",
}


@dataclass
class CommandResult:
    message: str
    kind: str = "info"

    @property
    def ok(self) -> bool:
        return self.kind in ("info", "success")


def _parse_value(key: str, raw: str):
    if key in BOOL_FIELDS:
        word = raw.strip().lower()
        if word not in BOOL_WORDS:
            raise ValidationError(f"{key} must be on or off")
        return BOOL_WORDS[word]
    if key in INT_FIELDS:
        try:
            return int(raw)
        except ValueError as exc:
            raise ValidationError(f"{key} must be a whole number") from exc
    return raw


def parse_assignments(tokens) -> tuple[dict, dict]:
    """Split KEY=VALUE tokens into a style patch and a size dict (w/h)."""
    patch = {}
    size = {}
    for token in tokens:
        if "=" not in token:
            raise ValidationError(f"Expected KEY=VALUE, got '{token}'")
        key, raw = token.split("=", 1)
        key = key.strip().lower().replace("-", "_")
        if key in ("w", "width"):
            size["width"] = _parse_int(raw, "width")
            continue
        if key in ("h", "height"):
            size["height"] = _parse_int(raw, "height")
            continue
        key = STYLE_ALIASES.get(key, key)
        if key not in STYLE_KEYS:
            raise ValidationError(f"Unknown style field: {key}")
        patch[key] = _parse_value(key, raw)
    return patch, size


def _parse_int(raw, what: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{what} must be a whole number") from exc


class CommandExecutor:
    """Maps ``:`` command lines onto Workspace actions.

    Every call returns exactly one CommandResult; WorkspaceError kinds map to
    result kinds, anything else is logged and reported as an IO failure.
    """

    def __init__(self, workspace, config: dict | None = None):
        self.ws = workspace
        self.config = dict(config or workspace.config or {})

    def get_command_names(self):
        return sorted(COMMAND_HELP)

    # ---------- public API ----------
    def execute(self, line: str) -> CommandResult:
        line = (line or "").strip()
        if not line:
            return CommandResult("", "info")
        try:
            tokens = shlex.split(line)
        except ValueError as exc:
            return CommandResult(f"Could not parse command: {exc}", "validation")

        name, args = tokens[0].lower(), tokens[1:]
        handler = getattr(self, "_cmd_" + name.replace("-", "_"), None)
        if handler is None:
            return CommandResult(f"Unknown command: {name}", "validation")

        try:
            message = handler(args)
        except WorkspaceError as exc:
            logger.info("%s: %s", name, exc.message)
            return CommandResult(exc.message, exc.kind)
        except Exception as exc:
            logger.exception("command %r failed", line)
            return CommandResult(f"{name} failed: {exc}", "io")
        return CommandResult(message, "success")

    # ---------- helpers ----------
    def _column(self, token: str) -> int:
        if token.isdigit():
            idx = int(token) - 1
            if 0 <= idx < self.ws.store.column_count:
                return idx
        idx = self.ws.store.column_index(token)
        if idx == -1:
            raise ValidationError(f"No column named '{token}'")
        return idx

    def _need(self, args, count: int, name: str):
        if len(args) < count:
            raise ValidationError(f"Usage: {COMMAND_HELP[name]}")

    # ---------- data ----------
    def _cmd_load(self, args):
        self._need(args, 1, "load")
        populate = "--all" in args
        path = next((a for a in args if a != "--all"), None)
        if path is None:
            raise ValidationError(f"Usage: {COMMAND_HELP['load']}")
        result = self.ws.ingest(path, populate=populate)
        if populate:
            return result.message
        return f"Loaded {self.ws.file_name}. Search to add rows."

    def _cmd_search(self, args):
        self._need(args, 1, "search")
        column = args[1] if len(args) > 1 else ALL_COLUMNS
        return self.ws.search(args[0], column).message

    def _cmd_select(self, args):
        self._need(args, 2, "select")
        r = _parse_int(args[0], "row")
        c = self._column(args[1])
        if not self.ws.select_cell(r, c):
            raise ValidationError(f"No cell at {r},{c + 1}")
        return f"Selected {r},{c + 1}"

    def _cmd_edit(self, args):
        r, c = self.ws.target_cell()
        if r == 0:
            raise ValidationError("Header cells change through rename")
        self.ws.edit_cell(r, c, " ".join(args))
        return "Cell updated"

    def _cmd_rename(self, args):
        self._need(args, 1, "rename")
        idx = self._column(args[0])
        self.ws.rename_header(idx, " ".join(args[1:]))
        return f"Column {idx + 1} renamed"

    def _cmd_row(self, args):
        self._need(args, 1, "row")
        action = args[0].lower()
        if action == "add":
            if not self.ws.add_row():
                raise ValidationError("Load or search data first")
            return "Row added"
        if action in ("del", "delete"):
            if not self.ws.delete_last_row():
                raise ValidationError("No data rows to delete")
            return "Last row deleted"
        raise ValidationError(f"Usage: {COMMAND_HELP['row']}")

    # ---------- view ----------
    def _cmd_sort(self, args):
        self._need(args, 2, "sort")
        column, mode = " ".join(args[:-1]), args[-1].lower()
        if not self.ws.sort(column, mode):
            raise NotFoundError(f"No column named '{column}'")
        return f"Sorted by {column} ({mode})"

    def _cmd_filter(self, args):
        self._need(args, 1, "filter")
        self.ws.set_filter(args[0].lower())
        shown = len(self.ws.view_rows())
        return f"Filter {args[0].lower()}: {shown} rows"

    def _cmd_hide(self, args):
        self._need(args, 1, "hide")
        idx = self._column(" ".join(args))
        if idx in self.ws.visible_columns:
            self.ws.toggle_column(idx)
        return f"Column {idx + 1} hidden"

    def _cmd_show(self, args):
        self._need(args, 1, "show")
        idx = self._column(" ".join(args))
        if idx not in self.ws.visible_columns:
            self.ws.toggle_column(idx)
        return f"Column {idx + 1} shown"

    # ---------- formatting ----------
    def _cmd_style(self, args):
        self._need(args, 1, "style")
        patch, size = parse_assignments(args)
        if patch:
            self.ws.set_style(patch)
        if size:
            self.ws.set_size(**size)
        return "Style updated"

    def _cmd_size(self, args):
        self._need(args, 1, "size")
        patch, size = parse_assignments(args)
        if patch or not size:
            raise ValidationError(f"Usage: {COMMAND_HELP['size']}")
        record = self.ws.set_size(**size)
        return f"Size {record.width or '-'}x{record.height or '-'}"

    def _cmd_all(self, args):
        self._need(args, 1, "all")
        patch, size = parse_assignments(args)
        count = self.ws.apply_to_all(patch, **size)
        return f"Applied to {count} cells"

    def _cmd_border(self, args):
        self._need(args, 1, "border")
        values = dict(a.split("=", 1) for a in args if "=" in a)
        unknown = set(values) - {"color", "style"}
        if unknown or not values:
            raise ValidationError(f"Usage: {COMMAND_HELP['border']}")
        self.ws.set_default_border(values.get("color"), values.get("style"))
        return "Default border updated"

    def _cmd_clear_formats(self, _args):
        self.ws.clear_formats()
        return "Formats cleared"

    def _cmd_clear(self, _args):
        self.ws.clear_workspace()
        return "Workspace cleared"

    # ---------- resize ----------
    def _cmd_drag(self, _args):
        enabled = self.ws.resize.toggle_drag_mode()
        return "Drag mode on" if enabled else "Drag mode off"

    def _cmd_handle(self, args):
        self._need(args, 1, "handle")
        if not self.ws.resize.drag_mode_enabled:
            raise ValidationError("Turn on drag mode first")
        self.ws.resize.tap_handle(args[0].lower())
        armed = self.ws.resize.armed_handle
        return f"Armed {armed}" if armed else "Handle released"

    def _cmd_pad(self, args):
        self._need(args, 2, "pad")
        record = self.ws.resize.virtual_drag(
            _parse_int(args[0], "dx"), _parse_int(args[1], "dy")
        )
        if record is None:
            raise ValidationError("Select a cell first")
        return f"Size {record.width}x{record.height}"

    # ---------- export ----------
    def _cmd_export(self, args):
        self._need(args, 1, "export")
        kind = args[0].lower()
        if kind not in EXPORT_KINDS:
            raise ValidationError(f"Usage: {COMMAND_HELP['export']}")
        name = args[1] if len(args) > 1 else EXPORT_DEFAULT_NAME
        path = self.ws.export(kind, name)
        return f"{kind.upper()} written to {path}"

    def _cmd_yank(self, _args):
        cmd = self.config.get("CLIPBOARD_INTERFACE_COMMAND")
        if not cmd:
            raise ValidationError("Set clipboard_interface_command in config.json")
        renderer = self.ws.renderer()
        renderer.require_data()
        try:
            subprocess.run(cmd, input=renderer.clipboard_text(), text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.warning("clipboard command failed: %s", exc)
            raise WorkspaceIOError("Copy failed") from exc
        return "Workspace copied"

    def _cmd_help(self, _args):
        return "Commands: " + ", ".join(self.get_command_names())
