"""
Faultline CLI - output helpers built on Click.

    success(), error(), info()
    banner()   - bordered header
    section()  - ruled section title
    kv()       - aligned key/value pair
    badge()    - inline tier badge
    table()    - minimal aligned table

click.style handles NO_COLOR / TERM=dumb.
"""

from __future__ import annotations

import shutil
from typing import Optional, Sequence

import click

_TERM_WIDTH: Optional[int] = None


def _tw() -> int:
    """Terminal width, cached and clamped to a sane range."""
    global _TERM_WIDTH
    if _TERM_WIDTH is None:
        _TERM_WIDTH = max(40, min(shutil.get_terminal_size((80, 24)).columns, 100))
    return _TERM_WIDTH


def success(message: str) -> None:
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)


def info(message: str) -> None:
    click.echo(click.style(message, fg="cyan"))


_H_TL = "\u250f"   # ┏
_H_TR = "\u2513"   # ┓
_H_BL = "\u2517"   # ┗
_H_BR = "\u251b"   # ┛
_H_H  = "\u2501"   # ━
_H_V  = "\u2503"   # ┃
_L_H  = "\u2500"   # ─

_CHECK = "\u2713"  # ✓
_CROSS = "\u2717"  # ✗


def banner(title: str, subtitle: str = "", *, fg: str = "cyan") -> None:
    """
    Bordered banner with centred title.

        ┏━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━┓
        ┃               faultline              ┃
        ┗━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━┛
    """
    inner = min(_tw(), 60) - 2
    click.echo(click.style(f"{_H_TL}{_H_H * inner}{_H_TR}", fg=fg))
    click.echo(click.style(f"{_H_V}{title.center(inner)}{_H_V}", fg=fg, bold=True))
    if subtitle:
        click.echo(click.style(f"{_H_V}{subtitle.center(inner)}{_H_V}", fg=fg))
    click.echo(click.style(f"{_H_BL}{_H_H * inner}{_H_BR}", fg=fg))


def section(title: str, *, fg: str = "cyan") -> None:
    dashes = max(4, _tw() - len(title) - 6)
    click.echo(click.style(f"{_L_H}{_L_H} {title} {_L_H * dashes}", fg=fg, bold=True))


def kv(key: str, value: object, *, key_width: int = 28, indent: int = 2) -> None:
    """
    Aligned key-value pair.

        Mode:                       silent
    """
    padding = " " * max(1, key_width - len(key) - 1)
    click.echo(f"{' ' * indent}{key}:{padding}{click.style(str(value), fg='cyan')}")


_TIER_COLOURS = {
    "ignore": "white",
    "background": "yellow",
    "terminal": "red",
}


def badge(tier: str) -> str:
    """Coloured tier label (not echoed)."""
    return click.style(tier, fg=_TIER_COLOURS.get(tier, "white"), bold=tier == "terminal")


def table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    indent: int = 2,
) -> None:
    """
    Minimal aligned table.

        Code               Value   Tier
        ─────────────────────────────────────
        WARNING            2       background
    """
    prefix = " " * indent
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row[: len(headers)]):
            widths[i] = max(widths[i], len(click.unstyle(str(cell))))
    widths = [w + 2 for w in widths]

    header = "".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    click.echo(f"{prefix}{click.style(header, fg='cyan', bold=True)}")
    click.echo(f"{prefix}{click.style(_L_H * sum(widths), dim=True)}")
    for row in rows:
        line = ""
        for i, cell in enumerate(row):
            cell = str(cell)
            pad = widths[i] - len(click.unstyle(cell)) if i < len(widths) else 0
            line += cell + " " * max(pad, 0)
        click.echo(f"{prefix}{line.rstrip()}")
