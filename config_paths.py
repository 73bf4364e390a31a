import json
import os

HOME = os.path.expanduser("~")
XDG_CONFIG_HOME = os.environ.get("XDG_CONFIG_HOME")
CONFIG_HOME = XDG_CONFIG_HOME if XDG_CONFIG_HOME else os.path.join(HOME, ".config")
CONFIG_DIR = os.path.join(CONFIG_HOME, "gridspace")
CONFIG_JSON = os.path.join(CONFIG_DIR, "config.json")
LOG_PATH = os.path.join(CONFIG_DIR, "gridspace.log")

# default settings
BORDER_COLOR_DEFAULT = "#9ca3af"
BORDER_STYLE_DEFAULT = "solid"
EXPORT_DELIMITER_DEFAULT = ","
EXPORT_IMAGE_SCALE_DEFAULT = 2
EXPORT_PAGE_ORIENTATION_DEFAULT = "p"
EXPORT_DIRECTORY_DEFAULT = "."
CLIPBOARD_INTERFACE_COMMAND_DEFAULT = None
LOG_LEVEL_DEFAULT = "INFO"

BORDER_STYLES = {"solid", "dashed", "dotted", "double", "none"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


def ensure_config_dirs():
    os.makedirs(CONFIG_DIR, exist_ok=True)


def default_config():
    return {
        "BORDER_COLOR": BORDER_COLOR_DEFAULT,
        "BORDER_STYLE": BORDER_STYLE_DEFAULT,
        "EXPORT_DELIMITER": EXPORT_DELIMITER_DEFAULT,
        "EXPORT_IMAGE_SCALE": EXPORT_IMAGE_SCALE_DEFAULT,
        "EXPORT_PAGE_ORIENTATION": EXPORT_PAGE_ORIENTATION_DEFAULT,
        "EXPORT_DIRECTORY": EXPORT_DIRECTORY_DEFAULT,
        "CLIPBOARD_INTERFACE_COMMAND": CLIPBOARD_INTERFACE_COMMAND_DEFAULT,
        "LOG_LEVEL": LOG_LEVEL_DEFAULT,
    }


def _is_hex_color(value):
    if not isinstance(value, str) or not value.startswith("#"):
        return False
    digits = value[1:]
    if len(digits) not in (3, 6):
        return False
    return all(ch in "0123456789abcdefABCDEF" for ch in digits)


def load_config():
    cfg = default_config()

    if not os.path.exists(CONFIG_JSON):
        return cfg

    try:
        with open(CONFIG_JSON, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return cfg

    if not isinstance(data, dict):
        return cfg

    border_color = data.get("border_color")
    if _is_hex_color(border_color):
        cfg["BORDER_COLOR"] = border_color

    border_style = data.get("border_style")
    if border_style in BORDER_STYLES:
        cfg["BORDER_STYLE"] = border_style

    export = data.get("export")
    if isinstance(export, dict):
        delimiter = export.get("delimiter")
        if isinstance(delimiter, str) and len(delimiter) == 1 and delimiter != '"':
            cfg["EXPORT_DELIMITER"] = delimiter
        scale = export.get("image_scale")
        if isinstance(scale, int) and not isinstance(scale, bool) and 0 < scale <= 8:
            cfg["EXPORT_IMAGE_SCALE"] = scale
        orientation = export.get("page_orientation")
        if orientation in {"p", "l"}:
            cfg["EXPORT_PAGE_ORIENTATION"] = orientation
        directory = export.get("directory")
        if isinstance(directory, str) and directory.strip():
            cfg["EXPORT_DIRECTORY"] = os.path.expanduser(directory)

    clip_cmd = data.get("clipboard_interface_command")
    if isinstance(clip_cmd, list) and clip_cmd and all(
        isinstance(item, str) for item in clip_cmd
    ):
        cfg["CLIPBOARD_INTERFACE_COMMAND"] = clip_cmd

    level = data.get("log_level")
    if isinstance(level, str) and level.upper() in LOG_LEVELS:
        cfg["LOG_LEVEL"] = level.upper()

    return cfg
