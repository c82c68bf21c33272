from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Sequence, TextIO

from . import renderer
from .builder import assemble, build_request
from .errors import ParseError, RenderError, UplotError
from .parsing import normalize, parse_table
from .plot_types import meta_for
from .spec import Options, RenderCall

log = logging.getLogger(__name__)

# reads at most this much per call; a document ends at end-of-stream
CHUNK = 1 << 16


def read_document(stream: BinaryIO) -> bytes:
    """Read until end-of-stream. Returns b"" once nothing is left."""
    chunks: List[bytes] = []
    while True:
        block = stream.read(CHUNK)
        if not block:
            break
        chunks.append(block)
    return b"".join(chunks)


def plan(data: bytes, options: Options) -> List[RenderCall]:
    """Parse, normalize and assemble one document into render calls."""
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"Input is not valid UTF-8: {e}")

    table = parse_table(text, options.delimiter)
    series, headers = normalize(table, want_headers=options.headers, transpose=options.transpose)
    return assemble(build_request(options, series, headers))


@dataclass
class Runner:
    """
    The per-document loop.

    Each document is read to end-of-stream, turned into render calls and
    handed to the renderer. Errors abort only the document they occur in.
    """

    options: Options
    render: Callable[[Sequence[RenderCall], Path, int], Path] = renderer.save
    documents: int = 0
    failures: int = 0
    written: List[Path] = field(default_factory=list)

    def process(self, data: bytes, pass_sink: Optional[BinaryIO] = None) -> bool:
        self.documents += 1
        ok = True
        try:
            calls = plan(data, self.options)
            if calls:
                path = renderer.output_path(self.options.output, self.documents)
                try:
                    written = self.render(calls, path, self.options.dpi)
                except UplotError:
                    raise
                except ValueError as e:
                    # matplotlib rejects bad colors, scales and the like with ValueError
                    raise RenderError(f"Cannot draw plot: {e}") from e
                self.written.append(written)
            else:
                log.warning("uplot: document %d has no data", self.documents)
        except UplotError as e:
            ok = False
            self.failures += 1
            log.error("uplot: document %d: %s", self.documents, e, exc_info=self.options.debug)

        if pass_sink is not None:
            pass_sink.write(data)
            pass_sink.flush()
        return ok

    def run(self, stream: BinaryIO, pass_sink: Optional[BinaryIO] = None) -> int:
        while True:
            data = read_document(stream)
            if not data:
                break
            self.process(data, pass_sink)
        return 1 if self.failures else 0


def list_colors(out: TextIO, names_only: bool = False) -> None:
    for name, hexval in renderer.color_table():
        if names_only:
            out.write(f"{name}\n")
        else:
            out.write(f"{name}\t{hexval}\n")


def _open_pass_sink(target: Optional[str]):
    if target is None:
        return None, False
    if target == "-":
        return sys.stdout.buffer, False
    return open(Path(target).expanduser(), "wb"), True


def run(options: Options, stdin: Optional[BinaryIO] = None) -> int:
    if not meta_for(options.command).reads_input:
        list_colors(sys.stdout, options.color_names)
        return 0

    stream = stdin if stdin is not None else sys.stdin.buffer
    sink, owned = _open_pass_sink(options.pass_through)
    try:
        return Runner(options).run(stream, sink)
    finally:
        if owned:
            sink.close()
