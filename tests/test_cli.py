from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
import io
import json
from pathlib import Path
import tempfile
import unittest
from unittest import mock

from countchart.cli import EXIT_INVALID_INPUT, EXIT_RENDER_FAILURE, main
from countchart.errors import RenderFailure


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.root = Path(tmp.name)

    def _write_json(self, payload: object, name: str = "data.json") -> Path:
        path = self.root / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def _run(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def test_render_writes_png(self) -> None:
        src = self._write_json([{"date": "2024-01-01", "count": 3}, {"date": "2024-01-08", "count": 5}])
        dst = self.root / "chart.png"
        code, out, _ = self._run("render", str(src), "--out", str(dst), "--scale", "week", "--width", "400", "--height", "300")
        self.assertEqual(code, 0)
        self.assertTrue(dst.read_bytes().startswith(b"\x89PNG"))
        self.assertIn("wrote", out)

    def test_render_with_style_file(self) -> None:
        src = self._write_json([["2024-01-01", 1]])
        style = self.root / "style.toml"
        style.write_text('[style]\nbar_color = "#10B981"\n', encoding="utf-8")
        code, _, _ = self._run("render", str(src), "--out", str(self.root / "c.png"), "--style", str(style))
        self.assertEqual(code, 0)

    def test_missing_style_file_is_invalid_input(self) -> None:
        src = self._write_json([])
        code, _, err = self._run("render", str(src), "--out", str(self.root / "c.png"), "--style", str(self.root / "none.toml"))
        self.assertEqual(code, EXIT_INVALID_INPUT)
        self.assertIn("style file not found", err)

    def test_negative_count_is_invalid_input(self) -> None:
        src = self._write_json([{"date": "2024-01-01", "count": -1}])
        code, _, err = self._run("render", str(src), "--out", str(self.root / "c.png"))
        self.assertEqual(code, EXIT_INVALID_INPUT)
        self.assertIn("negative", err)
        self.assertFalse((self.root / "c.png").exists())

    def test_oversized_count_is_invalid_input(self) -> None:
        src = self.root / "huge.json"
        src.write_text('[{"date": "2024-01-01", "count": 1' + "0" * 400 + "}]", encoding="utf-8")
        for command in (["render", str(src), "--out", str(self.root / "c.png")], ["aggregate", str(src)]):
            with self.subTest(command=command[0]):
                code, _, err = self._run(*command)
                self.assertEqual(code, EXIT_INVALID_INPUT)
                self.assertIn("finite", err)

    def test_bad_json_is_invalid_input(self) -> None:
        src = self.root / "broken.json"
        src.write_text("[{", encoding="utf-8")
        code, _, err = self._run("aggregate", str(src))
        self.assertEqual(code, EXIT_INVALID_INPUT)
        self.assertIn("not valid JSON", err)

    def test_out_of_range_width_is_invalid_input(self) -> None:
        src = self._write_json([])
        code, _, err = self._run("render", str(src), "--out", str(self.root / "c.png"), "--width", "10")
        self.assertEqual(code, EXIT_INVALID_INPUT)
        self.assertIn("width", err)

    def test_aggregate_prints_monthly_totals(self) -> None:
        src = self._write_json(
            [
                {"date": "2024-01-05", "count": 1},
                {"date": "2024-01-20", "count": 1},
                {"date": "2024-02-01", "count": 1},
            ]
        )
        code, out, _ = self._run("aggregate", str(src), "--scale", "month")
        self.assertEqual(code, 0)
        self.assertEqual(
            json.loads(out),
            [{"period_start": "2024-01-01", "value": 2.0}, {"period_start": "2024-02-01", "value": 1.0}],
        )

    def test_render_failure_exit_code(self) -> None:
        src = self._write_json([{"date": "2024-01-01", "count": 1}])
        with mock.patch("countchart.cli.ChartService.generate_count_by_date_png", side_effect=RenderFailure("encoder broke")):
            code, _, err = self._run("render", str(src), "--out", str(self.root / "c.png"))
        self.assertEqual(code, EXIT_RENDER_FAILURE)
        self.assertIn("encoder broke", err)


if __name__ == "__main__":
    unittest.main()
