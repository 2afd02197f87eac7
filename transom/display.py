"""
Rich renderables for menus and help.

render(instance, ...) lays out the pruned tree of a live instance:
- "column" groups become a grid with one suffix per line,
- "row" groups put their suffixes side by side,
- "columns" groups place their child groups next to each other,
- "subgroups" groups stack their child groups,
with group descriptions as headings, info lines as plain text, level markers in
edit mode, and keys that do not continue a pending key sequence dimmed.

describe(target) builds the help panel shown in help mode.

Palette keys
- heading, info, key, pending-key, unreachable-key, inapt-key
- description, inapt, value, inactive-value, choice, selected-choice, level
- panel-title, panel-subtitle, help-title, help-body, help-reference

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False, styling is suppressed.
"""
import inspect
from collections import defaultdict

from rich.columns import Columns
from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .commands import COMMON
from .instances import command_name
from .layout import Group as LayoutGroup, InfixCommand, Prefix, Spec

_palette = {
    # === Groups ===
    "heading": "bold #FFFFFF",  # Pure white headings
    "info": "italic #A3A3A3",  # Neutral gray literal lines

    # === Keys ===
    "key": "bold #FF4D94",  # MAGENTA-PINK → keys pop
    "pending-key": "bold #FFD600",  # AMBER → already typed
    "unreachable-key": "#4B5563",  # Slate → not reachable from the pending sequence
    "inapt-key": "#737373 strike",

    # === Descriptions / values ===
    "description": "#D1D5DB",
    "inapt": "#737373",
    "value": "bold #00E6FF",  # CYAN → active arguments
    "inactive-value": "#737373",  # Dim gray → unset arguments
    "choice": "#9CA3AF",
    "selected-choice": "bold #22C55E",  # GREEN → selected choice
    "level": "bold #36C5F0",

    # === Fancy panel ===
    "panel-title": "bold #FF4D94",
    "panel-subtitle": "#9CA3AF",

    # === Help ===
    "help-title": "bold #00E6FF",
    "help-body": "#E5E7EB",
    "help-reference": "italic #9CA3AF",
}


def _styles(colorful):
    styles = defaultdict(str, _palette | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    return styler


def render(instance, /, *, pending=(), colorful=True, fancy=False, show_common=False):
    """
    Build the renderable for a live instance.

    Returns
    - a rich renderable (Group, or Panel when fancy is set)
    """
    styler = _styles(colorful)

    def text(fragment, style=""):
        if callable(fragment):
            fragment = fragment(instance)
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    def line(suffix):
        rendered = suffix.format(styler, pending)
        if not colorful:
            rendered = Text(rendered.plain)
        if instance.edit:
            rendered = Text.assemble(text(f"{suffix.level}", styler("level")), rendered)
        return rendered

    def element(node, suffixes):
        match node:
            case LayoutGroup():
                return group(node, suffixes)
            case Spec():
                return line(next(suffixes))
            case _:
                return text(node.text, styler("info"))

    def group(node, suffixes):
        heading = text(node.description, styler("heading"))
        elements = [element(child, suffixes) for child in node.children]
        match node.kind:
            case "column":
                body = Table.grid(padding=(0, 1))
                for cell in elements:
                    body.add_row(cell)
            case "row":
                body = Table.grid(padding=(0, 2))
                body.add_row(*elements)
            case "columns":
                body = Columns(elements, padding=(0, 3))
            case _:
                body = Group(*elements)
        return Group(heading, body) if heading else body

    renders = []
    suffixes = iter(instance.suffixes)
    for node in instance.tree:
        renders.append(group(node, suffixes))
        renders.append(Text(""))
    if show_common:
        common = iter(instance.common)
        for node in COMMON:
            renders.append(group(node, common))
    while renders and isinstance(renders[-1], Text) and not renders[-1].plain:
        renders.pop()

    if fancy:
        return Panel(
            Group(*renders),
            title=text(instance.name, styler("panel-title")),
            subtitle=text("edit levels" if instance.edit else f"level {instance.level}", styler("panel-subtitle")),
            title_align="left",
            subtitle_align="right",
        )
    return Group(*renders)


def describe(target, /, *, suffix=None, colorful=True):
    """
    Build the help panel for a prefix, a command or an infix.
    """
    styler = _styles(colorful)
    renders = []
    match target:
        case Prefix():
            title = target.name
            renders.append(Text(target.description or "No documentation.", styler("help-body")))
            for label, reference in (("man", target.man), ("info", target.info)):
                if reference:
                    renders.append(Text(f"{label}: {reference}", styler("help-reference")))
        case InfixCommand() if suffix is not None:
            title = suffix.argument
            renders.append(Text(suffix.describe() or "No documentation.", styler("help-body")))
            if choices := suffix.resolved_choices():
                renders.append(Text(f"choices: {', '.join(map(str, choices))}", styler("help-reference")))
        case _:
            title = command_name(target)
            renders.append(Text(inspect.getdoc(target) or "No documentation.", styler("help-body")))
    return Panel(
        Group(*renders),
        title=Text(title, styler("help-title")),
        subtitle=Text(suffix.key, styler("panel-subtitle")) if suffix is not None else None,
        title_align="left",
    )


__all__ = (
    "render",
    "describe",
)
