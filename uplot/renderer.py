from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

import matplotlib
matplotlib.use("Agg")  # must come before Figure import

from matplotlib.figure import Figure
import matplotlib.colors as mcolors
import matplotlib.scale as mscale

from .spec import Params, PlotKind, RenderCall

log = logging.getLogger(__name__)

# one text column / row of the terminal layout, in inches
COLUMN_INCHES = 0.16
ROW_INCHES = 0.32

_DENSITY_CMAPS = ["Blues", "Oranges", "Greens", "Reds", "Purples", "Greys"]

_MIME = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "pdf": "application/pdf",
    "svg": "image/svg+xml",
}


def _finite(a: Optional[np.ndarray]) -> np.ndarray:
    a = np.asarray(a if a is not None else [], dtype=float)
    return a[np.isfinite(a)]


def _finite_xy(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    n = min(x.size, y.size)
    x, y = x[:n], y[:n]
    good = np.isfinite(x) & np.isfinite(y)
    return x[good], y[good]


def _colour(params: Params) -> Optional[str]:
    c = (params.color or "").strip()
    if not c:
        return None
    # integer colors index the default property cycle
    if c.isdigit():
        return f"C{int(c) % 10}"
    return c


def validate_params(params: Params) -> None:
    """Reject values matplotlib would refuse at draw time."""
    colour = _colour(params)
    if colour is not None and not mcolors.is_color_like(colour):
        raise ValueError(f"Unknown color: {params.color!r}")
    if params.xscale and params.xscale not in mscale.get_scale_names():
        names = ", ".join(mscale.get_scale_names())
        raise ValueError(f"Unknown scale: {params.xscale!r} (one of {names})")
    if params.nbins is not None and params.nbins <= 0:
        raise ValueError(f"nbins must be positive, got {params.nbins}")


def histogram_counts(values: np.ndarray, nbins: Optional[int] = None, closed: Optional[str] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Bin counts and edges for finite values.

    closed="right" makes every bin (a, b]; the default is [a, b) with the
    last bin closed on both sides, as numpy does it.
    """
    v = _finite(values)
    edges = np.histogram_bin_edges(v, bins=nbins if nbins else "auto")
    n = edges.size - 1
    if (closed or "left").strip().lower() == "right":
        idx = np.searchsorted(edges, v, side="left") - 1
        idx = np.clip(idx, 0, n - 1)
        counts = np.bincount(idx, minlength=n)
    else:
        counts, _ = np.histogram(v, bins=edges)
    return counts, edges


def new_figure(params: Params) -> Figure:
    fig = Figure()
    if params.width is not None or params.height is not None:
        w, h = fig.get_size_inches()
        if params.width is not None:
            w = max(1.0, params.width * COLUMN_INCHES)
        if params.height is not None:
            h = max(1.0, params.height * ROW_INCHES)
        fig.set_size_inches(w, h)
    return fig


def _apply_params(ax, kind: PlotKind, params: Params) -> None:
    if params.title:
        ax.set_title(params.title)
    if params.xlabel:
        ax.set_xlabel(params.xlabel)
    if params.ylabel:
        ax.set_ylabel(params.ylabel)

    if params.xscale:
        ax.set_xscale(params.xscale)

    # the box plot draws its values on the y axis
    if kind == PlotKind.BOX:
        if params.xlim is not None:
            ax.set_ylim(*params.xlim)
    else:
        if params.xlim is not None:
            ax.set_xlim(*params.xlim)
        if params.ylim is not None and params.ylim[0] != params.ylim[1]:
            ax.set_ylim(*params.ylim)

    if params.grid:
        ax.grid(True, alpha=0.4)

    if params.labels is False:
        ax.tick_params(labelbottom=False, labelleft=False)

    border = (params.border or "").strip().lower()
    if border == "none":
        for spine in ax.spines.values():
            spine.set_visible(False)
    elif border == "bold":
        for spine in ax.spines.values():
            spine.set_linewidth(2.0)

    ignored = [k for k in ("margin", "padding", "canvas") if getattr(params, k) is not None]
    if ignored:
        log.debug("ignoring terminal layout params: %s", ", ".join(ignored))


def draw(ax, calls: Sequence[RenderCall]) -> None:
    """Draw a primary call and its overlays onto one axes."""
    if not calls:
        return

    primary = calls[0]
    kind = primary.kind
    box_labels: List[str] = []
    named = False

    for i, call in enumerate(calls):
        p = call.params
        if i == 0:
            _apply_params(ax, kind, p)

        colour = _colour(p)
        kwargs: Dict[str, Any] = {}
        if colour:
            kwargs["color"] = colour
        if p.name:
            kwargs["label"] = p.name
            named = True

        if kind == PlotKind.BAR:
            labels = list(call.labels or [])
            pos = np.arange(len(labels))
            bars = ax.barh(pos, np.nan_to_num(call.y, nan=0.0), hatch=p.symbol or None, **kwargs)
            ax.set_yticks(pos)
            ax.set_yticklabels(labels)
            ax.invert_yaxis()
            if p.labels is not False:
                # a missing value gets an empty bar and no number
                texts = ["" if np.isnan(v) else f"{v:g}" for v in np.asarray(call.y, dtype=float)]
                ax.bar_label(bars, labels=texts, padding=2)

        elif kind == PlotKind.HIST:
            values = _finite(call.y)
            if values.size == 0:
                log.warning("histogram: no numeric values to draw")
                continue
            counts, edges = histogram_counts(values, p.nbins, p.closed)
            ax.bar(edges[:-1], counts, width=np.diff(edges), align="edge", hatch=p.symbol or None, **kwargs)

        elif kind == PlotKind.LINE:
            x, y = _finite_xy(call.x, call.y)
            ax.plot(x, y, **kwargs)

        elif kind == PlotKind.SCATTER:
            x, y = _finite_xy(call.x, call.y)
            ax.scatter(x, y, marker=primary.params.symbol or "o", s=12, **kwargs)

        elif kind == PlotKind.DENSITY:
            x, y = _finite_xy(call.x, call.y)
            if x.size == 0:
                continue
            if colour:
                cmap = mcolors.LinearSegmentedColormap.from_list(f"density-{i}", ["white", colour])
            else:
                cmap = matplotlib.colormaps[_DENSITY_CMAPS[i % len(_DENSITY_CMAPS)]]
            ax.hist2d(x, y, bins=40, cmap=cmap, cmin=1, alpha=0.8)
            if p.name:
                # hist2d has no legend entry; add a proxy
                ax.plot([], [], color=cmap(0.7), label=p.name)

        elif kind == PlotKind.BOX:
            values = _finite(call.y)
            label = (call.labels or [str(i + 1)])[0]
            box_labels.append(label)
            if values.size:
                ax.boxplot([values], positions=[len(box_labels)], widths=0.6, showfliers=True)

    if kind == PlotKind.BOX and box_labels:
        pos = list(range(1, len(box_labels) + 1))
        ax.set_xticks(pos)
        ax.set_xticklabels(box_labels)
        ax.set_xlim(0.5, len(box_labels) + 0.5)

    if named:
        ax.legend(loc="best")


def render_to_bytes(calls: Sequence[RenderCall], fmt: str = "png", dpi: int = 100) -> Tuple[bytes, str]:
    fmt = fmt.lower()
    if fmt == "jpeg":
        fmt = "jpg"
    if fmt not in _MIME:
        raise ValueError(f"Unsupported output format: {fmt}")

    fig = new_figure(calls[0].params if calls else Params())
    try:
        ax = fig.add_subplot(111)
        draw(ax, calls)

        buf = io.BytesIO()
        save_kwargs: Dict[str, Any] = {"bbox_inches": "tight"}
        if fmt in ("png", "jpg"):
            save_kwargs["dpi"] = int(dpi)
        if fmt == "jpg":
            save_kwargs["format"] = "jpeg"
            save_kwargs["pil_kwargs"] = {"quality": 95}
        else:
            save_kwargs["format"] = fmt

        fig.savefig(buf, **save_kwargs)
        return buf.getvalue(), _MIME[fmt]
    finally:
        fig.clear()


def output_path(base: str, document: int) -> Path:
    """Path for the n-th document (1-based); later documents get a -n suffix."""
    p = Path(base).expanduser()
    if document <= 1:
        return p
    return p.with_name(f"{p.stem}-{document}{p.suffix}")


def format_for(path: Path) -> str:
    """Output format from the file suffix; png when there is none."""
    fmt = (path.suffix.lstrip(".") or "png").lower()
    fmt = "jpg" if fmt == "jpeg" else fmt
    if fmt not in _MIME:
        raise ValueError(f"Unsupported output format: {fmt}")
    return fmt


def save(calls: Sequence[RenderCall], path: Path, dpi: int = 100) -> Path:
    payload, _ = render_to_bytes(calls, fmt=format_for(path), dpi=dpi)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    log.debug("wrote %s (%d bytes)", path, len(payload))
    return path


def color_table() -> List[Tuple[str, str]]:
    """Named colors the renderer understands, with their hex values."""
    names: Dict[str, str] = {}
    for table in (mcolors.BASE_COLORS, mcolors.TABLEAU_COLORS, mcolors.CSS4_COLORS):
        for name, value in table.items():
            names.setdefault(name, mcolors.to_hex(value))
    return sorted(names.items())
