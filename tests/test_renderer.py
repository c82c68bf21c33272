import tempfile
import unittest
from pathlib import Path

import matplotlib.colors as mcolors
import numpy as np

from uplot import renderer
from uplot.spec import Params, PlotKind, RenderCall, Role


def _call(kind, role=Role.PRIMARY, params=None, **kw):
    return RenderCall(kind=kind, role=role, params=params or Params(), **kw)


class TestHistogramCounts(unittest.TestCase):
    def test_left_closed_by_default(self):
        counts, edges = renderer.histogram_counts(np.array([0.0, 1.0, 1.0, 2.0]), nbins=2)
        self.assertEqual(edges.tolist(), [0.0, 1.0, 2.0])
        self.assertEqual(counts.tolist(), [1, 3])

    def test_right_closed(self):
        counts, _ = renderer.histogram_counts(np.array([0.0, 1.0, 1.0, 2.0]), nbins=2, closed="right")
        self.assertEqual(counts.tolist(), [3, 1])

    def test_nan_is_ignored(self):
        counts, _ = renderer.histogram_counts(np.array([1.0, np.nan, 2.0]), nbins=1)
        self.assertEqual(counts.tolist(), [2])


class TestRender(unittest.TestCase):
    def test_each_kind_renders_png(self):
        x = np.array([1.0, 2.0, 3.0, np.nan])
        y = np.array([2.0, 1.0, 3.0, 4.0])
        cases = [
            [_call(PlotKind.BAR, y=np.array([3.0, 1.0]), labels=["a", "b"], params=Params(title="t"))],
            [_call(PlotKind.HIST, y=y, params=Params(nbins=3, closed="right"))],
            [_call(PlotKind.LINE, x=x, y=y, params=Params(name="a", ylim=(0.0, 5.0))),
             _call(PlotKind.LINE, role=Role.OVERLAY, x=x, y=y * 2, params=Params(name="b"))],
            [_call(PlotKind.SCATTER, x=x, y=y, params=Params(color="3", border="none", labels=False))],
            [_call(PlotKind.DENSITY, x=x, y=y, params=Params(grid=True, name="d")),
             _call(PlotKind.DENSITY, role=Role.OVERLAY, x=x, y=y + 1)],
            [_call(PlotKind.BOX, y=y, labels=["1"], params=Params(xlim=(0.0, 5.0))),
             _call(PlotKind.BOX, role=Role.OVERLAY, y=y + 1, labels=["2"])],
        ]
        for calls in cases:
            payload, mime = renderer.render_to_bytes(calls, fmt="png", dpi=50)
            self.assertEqual(mime, "image/png")
            self.assertTrue(payload.startswith(b"\x89PNG"), calls[0].kind)

    def test_svg_and_unknown_format(self):
        calls = [_call(PlotKind.LINE, x=np.array([1.0, 2.0]), y=np.array([1.0, 2.0]))]
        payload, mime = renderer.render_to_bytes(calls, fmt="svg")
        self.assertEqual(mime, "image/svg+xml")
        self.assertIn(b"<svg", payload)
        with self.assertRaises(ValueError):
            renderer.render_to_bytes(calls, fmt="bmp")

    def test_figure_size_from_cells(self):
        fig = renderer.new_figure(Params(width=50, height=10))
        w, h = fig.get_size_inches()
        self.assertAlmostEqual(w, 50 * renderer.COLUMN_INCHES)
        self.assertAlmostEqual(h, 10 * renderer.ROW_INCHES)

    def test_save_and_output_path(self):
        with tempfile.TemporaryDirectory() as d:
            base = str(Path(d) / "out" / "plot.png")
            self.assertEqual(renderer.output_path(base, 1), Path(base))
            second = renderer.output_path(base, 2)
            self.assertEqual(second.name, "plot-2.png")
            calls = [_call(PlotKind.LINE, x=np.array([1.0, 2.0]), y=np.array([1.0, 2.0]))]
            written = renderer.save(calls, second, dpi=40)
            self.assertTrue(written.exists())
            self.assertTrue(written.read_bytes().startswith(b"\x89PNG"))

    def test_color_table(self):
        table = dict(renderer.color_table())
        self.assertEqual(table["red"], "#ff0000")
        self.assertIn("tab:blue", table)

    def test_nan_bar_has_no_label(self):
        fig = renderer.new_figure(Params())
        ax = fig.add_subplot(111)
        renderer.draw(ax, [_call(PlotKind.BAR, y=np.array([3.0, np.nan]), labels=["a", "b"])])
        self.assertEqual([t.get_text() for t in ax.texts], ["3", ""])

    def test_density_uses_color(self):
        fig = renderer.new_figure(Params())
        ax = fig.add_subplot(111)
        x = np.array([1.0, 2.0, 3.0])
        renderer.draw(ax, [_call(PlotKind.DENSITY, x=x, y=x, params=Params(color="red"))])
        cmap = ax.collections[0].get_cmap()
        self.assertTrue(np.allclose(cmap(1.0), mcolors.to_rgba("red")))


class TestValidateParams(unittest.TestCase):
    def test_accepts_names_and_palette_indexes(self):
        for colour in ("red", "3", "#00ff00", "tab:blue"):
            renderer.validate_params(Params(color=colour))
        renderer.validate_params(Params(xscale="log", nbins=5))

    def test_rejects_what_matplotlib_would_refuse(self):
        for params in (Params(color="notacolour"), Params(xscale="bogus"), Params(nbins=0), Params(nbins=-1)):
            with self.assertRaises(ValueError):
                renderer.validate_params(params)


if __name__ == "__main__":
    unittest.main()
