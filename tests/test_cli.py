"""Tests for the single and batch command-line interface."""

import csv
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from PIL import Image

from docgrid.cli import (
    _find_images,
    _load_app_config,
    _print_summary,
    _write_csv,
    extract_single,
    main,
    process_folder,
)
from docgrid.errors import NoQuadrilateralFoundError, SingularTransformError
from docgrid.geometry.ordering import OrderedQuadrilateral
from docgrid.geometry.primitives import Box, Point
from docgrid.processor import TableResult
from docgrid.table.structure import Table
from docgrid.utils.config import AppConfig


def _make_test_image(path: Path) -> None:
    """Create a minimal test PNG image at the given path."""
    Image.fromarray(np.zeros((100, 200), dtype=np.uint8)).save(path, format="PNG")


def _make_result(filename: str = "list.png") -> TableResult:
    """Create a TableResult with a 2x2 table."""
    rectified = np.full((60, 80), 255, dtype=np.uint8)
    rows = [
        [Box(2, 2, 36, 26), Box(42, 2, 36, 26)],
        [Box(2, 32, 36, 26), Box(42, 32, 36, 26)],
    ]
    return TableResult(
        source_file=filename,
        quadrilateral=OrderedQuadrilateral(
            Point(0, 0), Point(79, 0), Point(79, 59), Point(0, 59)
        ),
        rectified=rectified,
        table=Table(image=rectified, rows=rows),
    )


class TestFindImages:
    """Tests for image discovery."""

    def test_find_png_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.png").touch()
        (tmp_path / "b.png").touch()
        (tmp_path / "readme.txt").touch()
        files = _find_images(tmp_path)
        assert [f.name for f in files] == ["a.png", "b.png"]

    def test_find_mixed_extensions(self, tmp_path: Path) -> None:
        for name in ("a.png", "b.jpg", "c.tiff", "d.bmp", "e.pdf"):
            (tmp_path / name).touch()
        assert len(_find_images(tmp_path)) == 4

    def test_find_no_images(self, tmp_path: Path) -> None:
        assert _find_images(tmp_path) == []


class TestLoadAppConfig:
    """Tests for CLI config overrides."""

    def test_no_ocr_disables_cells(self, tmp_path: Path) -> None:
        config = _load_app_config(tmp_path / "missing.yaml", no_ocr=True)
        assert config.cells.enabled is False

    def test_ocr_kept_by_default(self, tmp_path: Path) -> None:
        config = _load_app_config(tmp_path / "missing.yaml")
        assert config.cells.enabled is True


class TestWriteCsv:
    """Tests for CSV export."""

    def test_columns_and_rows(self, tmp_path: Path) -> None:
        output = tmp_path / "sub" / "results.csv"
        _write_csv(
            [
                {"filename": "a.png", "status": "success", "rows": 3},
                {"filename": "b.png", "status": "failed", "error_kind": "x"},
            ],
            output,
        )
        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["rows"] == "3"
        assert rows[1]["error_kind"] == "x"
        assert "processing_time_s" in rows[0]

    def test_empty_results_write_nothing(self, tmp_path: Path) -> None:
        output = tmp_path / "results.csv"
        _write_csv([], output)
        assert not output.exists()


class TestPrintSummary:
    """Tests for the batch summary."""

    def test_prints_counts(self, capsys: pytest.CaptureFixture[str]) -> None:
        _print_summary({"total": 3, "successful": 2, "failed": 1}, Path("out.csv"))
        out = capsys.readouterr().out
        assert "Total:      3" in out
        assert "Failed:     1" in out


class TestProcessFolder:
    """Tests for batch processing with a mocked pipeline."""

    @patch("docgrid.cli.TableDocumentProcessor")
    def test_failures_do_not_stop_batch(
        self, mock_processor_cls: MagicMock, tmp_path: Path
    ) -> None:
        for name in ("a.png", "b.png", "c.png"):
            _make_test_image(tmp_path / name)

        mock_processor_cls.return_value.process_file.side_effect = [
            _make_result("a.png"),
            NoQuadrilateralFoundError("no boundary"),
            SingularTransformError("collinear"),
        ]

        output = tmp_path / "results.csv"
        summary = process_folder(tmp_path, output, AppConfig())

        assert summary == {"total": 3, "successful": 1, "failed": 2}
        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["status"] == "success"
        assert rows[0]["rows"] == "2"
        assert rows[0]["cells"] == "4"
        assert rows[1]["error_kind"] == "no_quadrilateral_found"
        assert rows[2]["error_kind"] == "singular_transform"

    def test_empty_folder(self, tmp_path: Path) -> None:
        summary = process_folder(tmp_path, tmp_path / "r.csv", AppConfig())
        assert summary == {"total": 0, "successful": 0, "failed": 0}

    def test_undecodable_file_does_not_stop_batch(self, tmp_path: Path) -> None:
        _make_test_image(tmp_path / "a_blank.png")
        (tmp_path / "b_corrupt.png").write_bytes(b"not an image")
        _make_test_image(tmp_path / "c_blank.png")

        output = tmp_path / "out" / "results.csv"
        config = AppConfig()
        config.cells.enabled = False
        summary = process_folder(tmp_path, output, config)

        assert summary == {"total": 3, "successful": 0, "failed": 3}
        with open(output) as f:
            rows = list(csv.DictReader(f))
        assert [r["filename"] for r in rows] == [
            "a_blank.png",
            "b_corrupt.png",
            "c_blank.png",
        ]
        assert rows[0]["error_kind"] == "no_quadrilateral_found"
        assert rows[1]["status"] == "failed"
        assert rows[1]["error_kind"] == "error"
        assert rows[2]["error_kind"] == "no_quadrilateral_found"


class TestExtractSingle:
    """Tests for single-photo extraction."""

    @patch("docgrid.cli.TableDocumentProcessor")
    def test_returns_dict_and_saves_rectified(
        self, mock_processor_cls: MagicMock, tmp_path: Path
    ) -> None:
        mock_processor_cls.return_value.process_file.return_value = _make_result()
        rectified_path = tmp_path / "out" / "rectified.png"

        result = extract_single(tmp_path / "list.png", AppConfig(), rectified_path)

        assert result["filename"] == "list.png"
        assert result["rows"][1][0] == [2, 32, 36, 26]
        assert "text" not in result
        assert rectified_path.exists()


class TestMain:
    """Tests for argument parsing and dispatch."""

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0

    def test_batch_missing_dir(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["batch", str(tmp_path / "nope")])
        assert exc_info.value.code == 1

    def test_extract_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["extract", str(tmp_path / "nope.png")])
        assert exc_info.value.code == 1

    @patch("docgrid.cli.extract_single")
    def test_extract_prints_json(
        self,
        mock_extract: MagicMock,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        image_path = tmp_path / "list.png"
        _make_test_image(image_path)
        mock_extract.return_value = {"filename": "list.png", "rows": []}

        main(["extract", str(image_path), "--no-ocr"])

        out = capsys.readouterr().out
        assert json.loads(out) == {"filename": "list.png", "rows": []}
        config = mock_extract.call_args[0][1]
        assert config.cells.enabled is False

    @patch("docgrid.cli.extract_single")
    def test_extract_writes_output_file(
        self, mock_extract: MagicMock, tmp_path: Path
    ) -> None:
        image_path = tmp_path / "list.png"
        _make_test_image(image_path)
        mock_extract.return_value = {"filename": "list.png"}
        output = tmp_path / "json" / "list.json"

        main(["extract", str(image_path), "-o", str(output)])

        assert json.loads(output.read_text()) == {"filename": "list.png"}

    @patch("docgrid.cli.extract_single")
    def test_extract_pipeline_error_exits(
        self, mock_extract: MagicMock, tmp_path: Path
    ) -> None:
        image_path = tmp_path / "list.png"
        _make_test_image(image_path)
        mock_extract.side_effect = NoQuadrilateralFoundError("no boundary")

        with pytest.raises(SystemExit) as exc_info:
            main(["extract", str(image_path)])
        assert exc_info.value.code == 2

    @patch("docgrid.cli.process_folder")
    def test_batch_dispatch_with_config(
        self, mock_process: MagicMock, tmp_path: Path
    ) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("cells:\n  workers: 3\n")

        main(["-c", str(config_file), "batch", str(tmp_path), "-o", "x.csv"])

        args = mock_process.call_args[0]
        assert args[0] == tmp_path
        assert args[1] == Path("x.csv")
        assert args[2].cells.workers == 3
