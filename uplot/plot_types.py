from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .spec import Command, PlotKind


@dataclass(frozen=True)
class CommandMeta:
    label: str
    aliases: Tuple[str, ...]

    # None for commands that draw nothing
    kind: Optional[PlotKind]

    # Data expectations
    min_series: int
    reads_input: bool
    uses_fmt: bool  # honours --fmt xyy/xyxy

    # Per-command options (beyond the common ones)
    options: Tuple[str, ...] = ()


COMMAND_META: Dict[Command, CommandMeta] = {
    Command.BARPLOT: CommandMeta(
        "Bar plot",
        aliases=("bar",),
        kind=PlotKind.BAR,
        min_series=2,
        reads_input=True,
        uses_fmt=False,
        options=("symbol", "xscale"),
    ),
    Command.COUNT: CommandMeta(
        "Bar plot of category counts",
        aliases=("c",),
        kind=PlotKind.BAR,
        min_series=1,
        reads_input=True,
        uses_fmt=False,
        options=("symbol",),
    ),
    Command.HISTOGRAM: CommandMeta(
        "Histogram",
        aliases=("hist",),
        kind=PlotKind.HIST,
        min_series=1,
        reads_input=True,
        uses_fmt=False,
        options=("nbins", "closed", "symbol"),
    ),
    Command.LINEPLOT: CommandMeta(
        "Line plot",
        aliases=("line",),
        kind=PlotKind.LINE,
        min_series=1,
        reads_input=True,
        uses_fmt=False,
        options=("canvas", "xlim", "ylim"),
    ),
    Command.LINEPLOTS: CommandMeta(
        "Line plot of several series",
        aliases=("lines",),
        kind=PlotKind.LINE,
        min_series=2,
        reads_input=True,
        uses_fmt=True,
        options=("canvas", "xlim", "ylim"),
    ),
    Command.SCATTER: CommandMeta(
        "Scatter plot",
        aliases=("s",),
        kind=PlotKind.SCATTER,
        min_series=2,
        reads_input=True,
        uses_fmt=True,
        options=("canvas", "xlim", "ylim"),
    ),
    Command.DENSITY: CommandMeta(
        "Density plot",
        aliases=("d",),
        kind=PlotKind.DENSITY,
        min_series=2,
        reads_input=True,
        uses_fmt=True,
        options=("grid", "xlim", "ylim"),
    ),
    Command.BOXPLOT: CommandMeta(
        "Box plot",
        aliases=("box",),
        kind=PlotKind.BOX,
        min_series=1,
        reads_input=True,
        uses_fmt=False,
        options=("xlim",),
    ),
    Command.COLORS: CommandMeta(
        "List color names",
        aliases=(),
        kind=None,
        min_series=0,
        reads_input=False,
        uses_fmt=False,
        options=("names",),
    ),
}


def meta_for(command: Command) -> CommandMeta:
    return COMMAND_META[command]


def command_for(name: str) -> Command:
    """Resolve a command name or one of its aliases."""
    return command_names()[(name or "").strip().lower()]


def command_names() -> Dict[str, Command]:
    out: Dict[str, Command] = {}
    for cmd, meta in COMMAND_META.items():
        out[cmd.value] = cmd
        for alias in meta.aliases:
            out[alias] = cmd
    return out
