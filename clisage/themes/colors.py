# Clisage CLI Builder — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Color palette and styles shared by the rich console and the full-screen application.

`OneColors` exposes the One Dark palette as hex strings. Any attribute suffixed with
`_b` resolves to the bold variant of the base color, e.g. `OneColors.CYAN_b` ->
`"bold #56B6C2"`, which is accepted by both rich markup and prompt_toolkit styles.
"""
from __future__ import annotations

from prompt_toolkit.styles import Style
from rich.style import Style as RichStyle
from rich.theme import Theme


class ColorsMeta(type):
    """Resolve `<COLOR>_b` attributes to a bold style string."""

    def __getattr__(cls, name: str) -> str:
        if name.endswith("_b"):
            base = name[:-2]
            if base in cls.__dict__:
                return f"bold {cls.__dict__[base]}"
        raise AttributeError(f"{cls.__name__} has no color named '{name}'")


class OneColors(metaclass=ColorsMeta):
    BLACK = "#282C34"
    GUTTER_GREY = "#4B5263"
    COMMENT_GREY = "#5C6370"
    WHITE = "#ABB2BF"
    DARK_RED = "#BE5046"
    LIGHT_RED = "#E06C75"
    DARK_YELLOW = "#D19A66"
    LIGHT_YELLOW = "#E5C07B"
    GREEN = "#98C379"
    CYAN = "#56B6C2"
    BLUE = "#61AFEF"
    MAGENTA = "#C678DD"


def get_one_theme() -> Theme:
    """Rich theme with semantic names used by console output."""
    return Theme(
        {
            "info": RichStyle(color=OneColors.CYAN),
            "warning": RichStyle(color=OneColors.LIGHT_YELLOW),
            "error": RichStyle(color=OneColors.DARK_RED, bold=True),
            "success": RichStyle(color=OneColors.GREEN),
            "muted": RichStyle(color=OneColors.COMMENT_GREY),
            "command": RichStyle(color=OneColors.BLUE, bold=True),
        }
    )


def get_app_style() -> Style:
    """prompt_toolkit style for the command builder panels."""
    return Style.from_dict(
        {
            "frame.border": OneColors.GUTTER_GREY,
            "frame.label": OneColors.WHITE,
            "panel.focused frame.border": OneColors.BLUE,
            "panel.focused frame.label": OneColors.BLUE_b,
            "row": OneColors.WHITE,
            "row.selected": f"bg:{OneColors.GUTTER_GREY} {OneColors.WHITE}",
            "row.dim": OneColors.COMMENT_GREY,
            "row.match": OneColors.LIGHT_YELLOW_b,
            "row.help": OneColors.COMMENT_GREY,
            "row.path": OneColors.COMMENT_GREY,
            "flag.on": OneColors.GREEN_b,
            "flag.off": OneColors.COMMENT_GREY,
            "flag.value": OneColors.LIGHT_YELLOW,
            "arg.required": OneColors.LIGHT_RED,
            "arg.value": OneColors.LIGHT_YELLOW,
            "edit.cursor": "reverse",
            "preview.bin": OneColors.BLUE_b,
            "preview.subcommand": OneColors.CYAN,
            "preview.flag": OneColors.MAGENTA,
            "preview.value": OneColors.GREEN,
            "preview.arg": OneColors.LIGHT_YELLOW,
            "filter": OneColors.LIGHT_YELLOW,
            "filter.prompt": OneColors.CYAN_b,
            "helpline": OneColors.COMMENT_GREY,
            "bottom-toolbar": f"noreverse bg:{OneColors.BLACK} {OneColors.WHITE}",
            "bottom-toolbar.key": OneColors.CYAN_b,
            "status.running": OneColors.LIGHT_YELLOW_b,
            "status.ok": OneColors.GREEN_b,
            "status.error": OneColors.DARK_RED_b,
        }
    )
