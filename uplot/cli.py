from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from importlib import metadata
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import command as runner
from . import renderer
from .errors import ConfigurationConflict
from .plot_types import COMMAND_META, command_for, meta_for
from .spec import Options, SeriesFormat, parse_limits

log = logging.getLogger(__name__)

PARAM_KEYS = (
    "title", "width", "height", "border", "margin", "padding", "color",
    "xlabel", "ylabel", "labels", "symbol", "xscale", "nbins", "closed",
    "canvas", "xlim", "ylim", "grid", "name",
)


def _version() -> str:
    try:
        return metadata.version("uplot")
    except metadata.PackageNotFoundError:
        return "unknown"


def _limits(text: str):
    try:
        return parse_limits(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected LO,HI ({e})")


def _common_parser() -> argparse.ArgumentParser:
    # SUPPRESS keeps unset options out of the namespace, so a value given
    # before the command is not reset by the sub-command's defaults
    p = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    p.add_argument("-O", "--pass", dest="pass_through", nargs="?", const="-", metavar="FILE",
                   help="file to output standard input data to [stdout]")
    p.add_argument("-o", "--output", metavar="FILE", help="file to write the plot to [uplot.png]")
    p.add_argument("-d", "--delimiter", metavar="DELIM", help="use DELIM instead of TAB for field delimiter")
    p.add_argument("-H", "--headers", action="store_true", help="specify that the input has header row")
    p.add_argument("-T", "--transpose", action="store_true", help="each input row is one series")
    p.add_argument("-t", "--title", help="print string on the top of plot")
    p.add_argument("-x", "--xlabel", help="print string on the bottom of the plot")
    p.add_argument("-y", "--ylabel", help="print string on the far left of the plot")
    p.add_argument("-w", "--width", type=int, help="number of characters per row")
    p.add_argument("-h", "--height", type=float, help="number of rows")
    p.add_argument("-b", "--border", help="style of the bounding box (none, bold)")
    p.add_argument("-m", "--margin", type=float, help="number of spaces to the left of the plot")
    p.add_argument("-p", "--padding", type=float, help="space of the left and right of the plot")
    p.add_argument("-c", "--color", help="color of the drawing (name or palette index)")
    p.add_argument("--labels", action=argparse.BooleanOptionalAction, help="show or hide the labels")
    p.add_argument("--fmt", choices=[f.value for f in SeriesFormat], help="xyy, xyxy")
    p.add_argument("--config", metavar="FILE", help="JSON file with default options and params")
    p.add_argument("--dpi", type=int, help="resolution of raster output [100]")
    p.add_argument("--debug", action="store_true", help="log tracebacks and render details")
    p.add_argument("--help", action="help", help="show this help message and exit")
    return p


def _add_command_options(name: str, p: argparse.ArgumentParser) -> None:
    opts = COMMAND_META[command_for(name)].options
    if "symbol" in opts:
        p.add_argument("--symbol", help="character used to draw bars")
    if "xscale" in opts:
        p.add_argument("--xscale", help="scale of the value axis (linear, log, ...)")
    if "nbins" in opts:
        p.add_argument("-n", "--nbins", type=int, help="number of bins")
    if "closed" in opts:
        p.add_argument("--closed", choices=["left", "right"], help="side on which bins are closed")
    if "canvas" in opts:
        p.add_argument("--canvas", help="canvas type")
    if "grid" in opts:
        p.add_argument("--grid", action="store_true", help="draw grid lines")
    if "xlim" in opts:
        p.add_argument("--xlim", type=_limits, metavar="LO,HI", help="plotting range for the x coordinate")
    if "ylim" in opts:
        p.add_argument("--ylim", type=_limits, metavar="LO,HI", help="plotting range for the y coordinate")
    if "names" in opts:
        p.add_argument("-n", "--names", dest="color_names", action="store_true", help="print names only")


def build_parser() -> argparse.ArgumentParser:
    common = _common_parser()
    parser = argparse.ArgumentParser(
        prog="uplot",
        description="Plot delimited data from standard input.",
        parents=[common],
        add_help=False,
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("--version", action="version", version=f"uplot {_version()}")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True
    for cmd, meta in COMMAND_META.items():
        sp = sub.add_parser(
            cmd.value,
            aliases=list(meta.aliases),
            parents=[common],
            add_help=False,
            help=meta.label,
            argument_default=argparse.SUPPRESS,
        )
        _add_command_options(cmd.value, sp)
    return parser


def load_config(path: str) -> Dict[str, Any]:
    try:
        with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationConflict(f"Cannot read config {path}: {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationConflict(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigurationConflict(f"Config {path} must contain a JSON object.")
    return data


def resolve_options(ns: argparse.Namespace) -> Options:
    """Config file first, then the command line on top."""
    given = vars(ns)
    base: Dict[str, Any] = load_config(given["config"]) if "config" in given else {}
    base["command"] = command_for(given["command"]).value

    options = Options.from_dict(base)

    params = {k: given[k] for k in PARAM_KEYS if k in given}
    top = {
        k: given[k]
        for k in ("delimiter", "headers", "transpose", "output", "pass_through", "dpi", "debug", "color_names")
        if k in given
    }
    if "fmt" in given:
        top["fmt"] = SeriesFormat(given["fmt"])

    resolved = replace(options, params=replace(options.params, **params), **top)
    if resolved.fmt != SeriesFormat.XYY and not meta_for(resolved.command).uses_fmt:
        log.warning("uplot: --fmt %s has no effect on %s", resolved.fmt.value, resolved.command.value)
    if resolved.dpi <= 0:
        raise ConfigurationConflict(f"dpi must be positive, got {resolved.dpi}")
    try:
        renderer.format_for(Path(resolved.output))
        renderer.validate_params(resolved.params)
    except ValueError as e:
        raise ConfigurationConflict(str(e))
    return resolved


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s" if not debug else "%(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    try:
        options = resolve_options(ns)
    except ConfigurationConflict as e:
        parser.error(str(e))

    configure_logging(options.debug)
    log.debug("options: %s", options.to_dict())
    return runner.run(options)


if __name__ == "__main__":
    sys.exit(main())
