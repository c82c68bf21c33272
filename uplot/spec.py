from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationConflict


class Command(str, Enum):
    BARPLOT = "barplot"
    COUNT = "count"
    HISTOGRAM = "histogram"
    LINEPLOT = "lineplot"
    LINEPLOTS = "lineplots"
    SCATTER = "scatter"
    DENSITY = "density"
    BOXPLOT = "boxplot"
    COLORS = "colors"


class PlotKind(str, Enum):
    BAR = "bar"
    HIST = "hist"
    LINE = "line"
    SCATTER = "scatter"
    DENSITY = "density"
    BOX = "box"


class SeriesFormat(str, Enum):
    # series 0 is the x axis of every y series
    XYY = "xyy"
    # consecutive (x, y) pairs
    XYXY = "xyxy"


class Role(str, Enum):
    PRIMARY = "primary"
    OVERLAY = "overlay"


@dataclass(frozen=True)
class Params:
    """
    Plot parameters handed to the renderer.

    None means "unset": the renderer picks its own default. Header derived
    defaults go through with_defaults(), which never touches a set field.
    """

    title: Optional[str] = None
    width: Optional[int] = None
    height: Optional[float] = None
    border: Optional[str] = None
    margin: Optional[float] = None
    padding: Optional[float] = None
    color: Optional[str] = None
    xlabel: Optional[str] = None
    ylabel: Optional[str] = None
    labels: Optional[bool] = None
    symbol: Optional[str] = None
    xscale: Optional[str] = None
    nbins: Optional[int] = None
    closed: Optional[str] = None
    canvas: Optional[str] = None
    xlim: Optional[Tuple[float, float]] = None
    ylim: Optional[Tuple[float, float]] = None
    grid: Optional[bool] = None
    name: Optional[str] = None

    def with_defaults(self, **defaults: Any) -> Params:
        unknown = set(defaults) - _PARAM_FIELDS
        if unknown:
            raise TypeError(f"Unknown params: {', '.join(sorted(unknown))}")
        fill = {k: v for k, v in defaults.items() if v is not None and getattr(self, k) is None}
        return replace(self, **fill) if fill else self

    def compact(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        d = self.compact()
        for lim in ("xlim", "ylim"):
            if lim in d:
                d[lim] = list(d[lim])
        return d

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Params:
        if not isinstance(d, dict):
            raise ConfigurationConflict("params in config must be a JSON object.")
        unknown = set(d) - _PARAM_FIELDS
        if unknown:
            raise ConfigurationConflict(f"Unknown params in config: {', '.join(sorted(unknown))}")

        return Params(
            title=_opt(d, "title", str),
            width=_opt(d, "width", int),
            height=_opt(d, "height", float),
            border=_opt(d, "border", str),
            margin=_opt(d, "margin", float),
            padding=_opt(d, "padding", float),
            color=_opt(d, "color", str),
            xlabel=_opt(d, "xlabel", str),
            ylabel=_opt(d, "ylabel", str),
            labels=_opt(d, "labels", _as_bool),
            symbol=_opt(d, "symbol", str),
            xscale=_opt(d, "xscale", str),
            nbins=_opt(d, "nbins", int),
            closed=_opt(d, "closed", str),
            canvas=_opt(d, "canvas", str),
            xlim=_opt(d, "xlim", parse_limits),
            ylim=_opt(d, "ylim", parse_limits),
            grid=_opt(d, "grid", _as_bool),
            name=_opt(d, "name", str),
        )


_PARAM_FIELDS = {f.name for f in fields(Params)}


def _as_bool(value: Any) -> bool:
    # JSON true/false only; bool("false") would be True
    if not isinstance(value, bool):
        raise TypeError("expected true or false")
    return value


def _positive_int(value: Any) -> int:
    n = int(value)
    if n <= 0:
        raise ValueError("must be positive")
    return n


def _opt(d: Dict[str, Any], key: str, conv, default: Any = None) -> Any:
    v = d.get(key)
    if v is None:
        return default
    try:
        return conv(v)
    except (TypeError, ValueError) as e:
        raise ConfigurationConflict(f"Invalid value for {key!r}: {v!r} ({e})")


def parse_limits(value: Any) -> Tuple[float, float]:
    """Accepts "lo,hi" or a two item sequence. Extra items are dropped."""
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    if len(items) < 2:
        raise ValueError("limits need two values")
    lo, hi = float(items[0]), float(items[1])
    return (lo, hi)


@dataclass(frozen=True)
class Options:
    """Everything the user configured, resolved once per process."""

    command: Command = Command.BARPLOT
    params: Params = field(default_factory=Params)
    delimiter: str = "\t"
    headers: bool = False
    transpose: bool = False
    fmt: SeriesFormat = SeriesFormat.XYY
    output: str = "uplot.png"
    pass_through: Optional[str] = None
    dpi: int = 100
    debug: bool = False
    color_names: bool = False

    @property
    def count(self) -> bool:
        return self.command == Command.COUNT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command.value,
            "params": self.params.to_dict(),
            "delimiter": self.delimiter,
            "headers": self.headers,
            "transpose": self.transpose,
            "fmt": self.fmt.value,
            "output": self.output,
            "pass_through": self.pass_through,
            "dpi": self.dpi,
            "debug": self.debug,
            "color_names": self.color_names,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> Options:
        try:
            command = Command(d.get("command", Command.BARPLOT.value))
            fmt = SeriesFormat(d.get("fmt", SeriesFormat.XYY.value))
        except ValueError as e:
            raise ConfigurationConflict(str(e))

        return Options(
            command=command,
            params=Params.from_dict(d.get("params", {}) or {}),
            delimiter=str(d.get("delimiter", "\t")),
            headers=_opt(d, "headers", _as_bool, False),
            transpose=_opt(d, "transpose", _as_bool, False),
            fmt=fmt,
            output=str(d.get("output", "uplot.png")),
            pass_through=(None if d.get("pass_through") in (None, "") else str(d.get("pass_through"))),
            dpi=_opt(d, "dpi", _positive_int, 100),
            debug=_opt(d, "debug", _as_bool, False),
            color_names=_opt(d, "color_names", _as_bool, False),
        )


@dataclass(frozen=True)
class PlotRequest:
    command: Command
    series: List[List[Any]]
    headers: Optional[List[str]] = None
    params: Params = field(default_factory=Params)
    count: bool = False
    fmt: SeriesFormat = SeriesFormat.XYY

    def header(self, i: int) -> Optional[str]:
        if not self.headers or i >= len(self.headers):
            return None
        return self.headers[i] or None


@dataclass(frozen=True)
class RenderCall:
    kind: PlotKind
    role: Role
    params: Params
    x: Optional[np.ndarray] = None
    y: Optional[np.ndarray] = None
    labels: Optional[Sequence[str]] = None
