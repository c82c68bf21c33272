from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .errors import UsageError
from .parsing import MISSING, coerce
from .plot_types import meta_for
from .spec import Command, Options, Params, PlotRequest, RenderCall, Role, SeriesFormat

log = logging.getLogger(__name__)


def tally(series: Sequence[Any]) -> Tuple[List[Any], List[int]]:
    """
    Count how often each distinct value occurs.

    Categories come back most frequent first; equal counts keep the order
    in which the values were first seen.
    """
    counts: Dict[Any, int] = {}
    for v in series:
        if v is MISSING:
            continue
        counts[v] = counts.get(v, 0) + 1
    # dicts keep first-seen order and sorted() is stable
    ordered = sorted(counts.items(), key=lambda kv: -kv[1])
    return [k for k, _ in ordered], [n for _, n in ordered]


def y_limits(ys: Sequence[np.ndarray]) -> Optional[Tuple[float, float]]:
    """Shared (min, max) over several series, ignoring NaN."""
    finite = [y[np.isfinite(y)] for y in ys]
    finite = [y for y in finite if y.size]
    if not finite:
        return None
    allv = np.concatenate(finite)
    return (float(allv.min()), float(allv.max()))


def build_request(options: Options, series: List[List[Any]], headers: Optional[List[str]]) -> PlotRequest:
    return PlotRequest(
        command=options.command,
        series=series,
        headers=headers,
        params=options.params,
        count=options.count,
        fmt=options.fmt,
    )


def _require(req: PlotRequest, n: int) -> None:
    if len(req.series) < n:
        name = req.command.value
        raise UsageError(f"{name} needs at least {n} series, got {len(req.series)}.")


def _histogram(req: PlotRequest) -> List[RenderCall]:
    params = req.params.with_defaults(title=req.header(0))
    values = coerce(req.series[0], 0)
    return [RenderCall(kind=meta_for(req.command).kind, role=Role.PRIMARY, params=params, y=values)]


def _barplot(req: PlotRequest) -> List[RenderCall]:
    series = req.series
    if req.count:
        series = list(tally(series[0]))

    if len(series) < 2:
        raise UsageError(f"{req.command.value} needs a label series and a value series, got {len(series)}.")

    params = req.params.with_defaults(title=req.header(1))

    labels = ["" if v is MISSING else str(v) for v in series[0]]
    # row-major input can give the two rows different lengths
    values = coerce(series[1], 1)[: len(labels)]
    if values.size < len(labels):
        values = np.concatenate([values, np.full(len(labels) - values.size, np.nan)])

    return [
        RenderCall(
            kind=meta_for(req.command).kind,
            role=Role.PRIMARY,
            params=params,
            y=values,
            labels=labels,
        )
    ]


def _paired(x: np.ndarray, y: np.ndarray, name: Optional[str]) -> Tuple[np.ndarray, np.ndarray]:
    # row-major input can give x and y different lengths; only full pairs are drawn
    if x.size != y.size:
        n = min(x.size, y.size)
        log.warning(
            "uplot: %s has %d x values and %d y values; using the first %d",
            name or "series", x.size, y.size, n,
        )
        x, y = x[:n], y[:n]
    return x, y


def _lineplot(req: PlotRequest) -> List[RenderCall]:
    if len(req.series) == 1:
        params = req.params.with_defaults(ylabel=req.header(0))
        y = coerce(req.series[0], 0)
        x = np.arange(1, y.size + 1, dtype=float)
    else:
        params = req.params.with_defaults(xlabel=req.header(0), ylabel=req.header(1))
        x = coerce(req.series[0], 0)
        y = coerce(req.series[1], 1)
        x, y = _paired(x, y, req.header(1))
    return [RenderCall(kind=meta_for(req.command).kind, role=Role.PRIMARY, params=params, x=x, y=y)]


def _xy_pairs(req: PlotRequest) -> List[Tuple[np.ndarray, np.ndarray, Optional[str]]]:
    """(x, y, name) per drawn series, according to the series format."""
    if req.fmt == SeriesFormat.XYXY:
        if len(req.series) % 2:
            raise UsageError(f"xyxy format needs an even number of series, got {len(req.series)}.")
        pairs = [
            (coerce(req.series[i], i), coerce(req.series[i + 1], i + 1), req.header(i + 1))
            for i in range(0, len(req.series), 2)
        ]
    else:
        x = coerce(req.series[0], 0)
        pairs = [(x, coerce(req.series[i], i), req.header(i)) for i in range(1, len(req.series))]
    return [(*_paired(x, y, name), name) for x, y, name in pairs]


def _overlays(req: PlotRequest) -> List[RenderCall]:
    kind = meta_for(req.command).kind
    pairs = _xy_pairs(req)

    x0, y0, name0 = pairs[0]
    params = req.params.with_defaults(name=name0, ylim=y_limits([y for _, y, _ in pairs]))

    calls = [RenderCall(kind=kind, role=Role.PRIMARY, params=params, x=x0, y=y0)]
    for x, y, name in pairs[1:]:
        calls.append(RenderCall(kind=kind, role=Role.OVERLAY, params=Params(name=name), x=x, y=y))
    return calls


def _boxplot(req: PlotRequest) -> List[RenderCall]:
    kind = meta_for(req.command).kind
    calls: List[RenderCall] = []
    for i, s in enumerate(req.series):
        label = req.header(i) or str(i + 1)
        values = coerce(s, i)
        if i == 0:
            calls.append(RenderCall(kind=kind, role=Role.PRIMARY, params=req.params, y=values, labels=[label]))
        else:
            calls.append(RenderCall(kind=kind, role=Role.OVERLAY, params=Params(), y=values, labels=[label]))
    return calls


_ASSEMBLERS: Dict[Command, Callable[[PlotRequest], List[RenderCall]]] = {
    Command.BARPLOT: _barplot,
    Command.COUNT: _barplot,
    Command.HISTOGRAM: _histogram,
    Command.LINEPLOT: _lineplot,
    Command.LINEPLOTS: _overlays,
    Command.SCATTER: _overlays,
    Command.DENSITY: _overlays,
    Command.BOXPLOT: _boxplot,
}


def assemble(req: PlotRequest) -> List[RenderCall]:
    """
    Pick x/y roles for the request's command and fill header defaults.

    Returns the primary render call followed by any overlays, or an empty
    list when the document had no data.
    """
    try:
        build = _ASSEMBLERS[req.command]
    except KeyError:
        raise UsageError(f"{req.command.value} does not draw a plot.")

    if not req.series:
        log.debug("%s: no series in document", req.command.value)
        return []

    _require(req, meta_for(req.command).min_series)
    calls = build(req)
    log.debug("%s: %d render call(s)", req.command.value, len(calls))
    return calls
