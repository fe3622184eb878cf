"""Tests for pdfturn.cli module."""

import argparse
import io
import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from PIL import Image
from pypdf import PdfReader

from pdfturn.cli import create_parser, main, parse_rotations, parse_size
from pdfturn.geometry import Size
from pdfturn.plan import RotationPlan


def fake_poppler():
    """Patch pdf2image so rendering never needs poppler."""
    return patch("pdf2image.convert_from_bytes", return_value=[Image.new("RGB", (20, 26), (40, 40, 40))])


class TestCreateParser:
    """Test argument parser creation."""

    def test_parser_creation(self):
        parser = create_parser()
        assert parser.prog == "pdft"

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "pdfturn" in capsys.readouterr().out

    def test_config_flag(self):
        args = create_parser().parse_args(["-c", "test.yaml", "plan", "--pages", "3"])
        assert args.config == Path("test.yaml")

    def test_verbosity_counts(self):
        args = create_parser().parse_args(["-vv", "plan"])
        assert args.verbose == 2

    def test_preview_defaults(self):
        args = create_parser().parse_args(["preview", "doc.pdf"])
        assert args.command == "preview"
        assert args.output == Path("preview.png")
        assert args.size == Size(800, 600)
        assert args.page is None
        assert args.rotation is None

    def test_rotations_append(self):
        args = create_parser().parse_args(["rotate", "doc.pdf", "-r", "1", "-r", "3:180"])
        assert args.rotation == ["1", "3:180"]

    def test_rotate_backend_choices(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["rotate", "doc.pdf", "--backend", "fax"])


class TestParseSize:
    def test_valid(self):
        assert parse_size("640x480") == Size(640, 480)
        assert parse_size("10.5X20") == Size(10.5, 20)

    @pytest.mark.parametrize("text", ["640", "axb", "0x10", "10x-1", "1x2x3"])
    def test_invalid(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_size(text)


class TestParseRotations:
    def test_none_gives_default(self):
        assert parse_rotations(None) == RotationPlan.default()

    def test_specs(self):
        plan = parse_rotations(["2", "3:180", "4:ccw"])
        assert plan.to_wire_format() == [
            {"page": 2, "degrees": 90},
            {"page": 3, "degrees": 180},
            {"page": 4, "degrees": 270},
        ]

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid rotation '2:45'"):
            parse_rotations(["2:45"])


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_missing_file(self, temp_dir):
        assert main(["rotate", str(temp_dir / "missing.pdf")]) == 1

    def test_non_pdf_file_rejected(self, temp_dir, capsys):
        document = temp_dir / "notes.txt"
        document.write_bytes(b"%PDF-1.4")
        assert main(["rotate", str(document)]) == 1
        assert "Invalid File Type" in capsys.readouterr().err
        assert not (temp_dir / "notes_rotated.pdf").exists()

    def test_pdf_extension_is_case_insensitive(self, temp_dir, multi_page_pdf_bytes):
        document = temp_dir / "SCAN.PDF"
        document.write_bytes(multi_page_pdf_bytes)
        assert main(["-q", "rotate", str(document)]) == 0
        assert (temp_dir / "SCAN_rotated.pdf").exists()

    def test_bad_rotation(self, temp_pdf):
        assert main(["rotate", str(temp_pdf), "-r", "x"]) == 1

    def test_bad_config(self, temp_dir, temp_pdf):
        config_path = temp_dir / "bad.yaml"
        config_path.write_text("preview: [1, 2]\n")
        assert main(["-c", str(config_path), "rotate", str(temp_pdf)]) == 1


class TestPlanCommand:
    """Test repairing a plan and printing it as JSON."""

    def test_repaired_plan_printed(self, capsys):
        code = main(["plan", "--pages", "4", "-r", "5:90", "-r", "2", "-r", "2:180"])
        captured = capsys.readouterr()
        assert code == 0
        assert json.loads(captured.out) == [{"page": 4, "degrees": 90}, {"page": 2, "degrees": 180}]
        assert "Notice:" in captured.err

    def test_default_plan(self, capsys):
        assert main(["-q", "plan", "--pages", "2"]) == 0
        assert json.loads(capsys.readouterr().out) == [{"page": 1, "degrees": 90}]

    def test_page_count_from_file(self, temp_pdf, capsys):
        assert main(["-q", "plan", str(temp_pdf), "-r", "9:180"]) == 0
        assert json.loads(capsys.readouterr().out) == [{"page": 4, "degrees": 180}]

    def test_requires_pages_or_file(self):
        assert main(["plan"]) == 1

    def test_empty_document(self):
        assert main(["plan", "--pages", "0"]) == 1


class TestRotateCommand:
    """Test rotation through the local and mock backends."""

    def test_local_rotation(self, temp_pdf, temp_dir):
        output = temp_dir / "out.pdf"
        code = main(["rotate", str(temp_pdf), "-r", "1:180", "-r", "4:270", "-o", str(output)])
        assert code == 0
        reader = PdfReader(io.BytesIO(output.read_bytes()))
        assert [page.rotation for page in reader.pages] == [180, 0, 0, 270]

    def test_default_output_name(self, temp_pdf):
        assert main(["-q", "rotate", str(temp_pdf)]) == 0
        output = temp_pdf.with_name("test_rotated.pdf")
        assert output.exists()
        assert PdfReader(io.BytesIO(output.read_bytes())).pages[0].rotation == 90

    def test_out_of_range_page_is_clamped(self, temp_pdf, temp_dir, capsys):
        output = temp_dir / "out.pdf"
        assert main(["rotate", str(temp_pdf), "-r", "12:90", "-o", str(output)]) == 0
        reader = PdfReader(io.BytesIO(output.read_bytes()))
        assert reader.pages[3].rotation == 90
        assert "Page numbers adjusted" in capsys.readouterr().err

    def test_mock_backend(self, temp_pdf, temp_dir):
        output = temp_dir / "out.pdf"
        assert main(["rotate", str(temp_pdf), "--backend", "mock", "-o", str(output)]) == 0
        assert output.read_bytes() == b"%PDF-mock"

    def test_service_failure(self, temp_pdf, temp_dir):
        output = temp_dir / "out.pdf"
        with patch("httpx.AsyncClient.post", side_effect=httpx.ConnectError("refused")):
            code = main([
                "rotate", str(temp_pdf), "--backend", "http",
                "--url", "http://svc.invalid/api", "-o", str(output),
            ])
        assert code == 1
        assert not output.exists()


class TestPreviewCommand:
    """Test rendering previews with poppler mocked out."""

    def test_grid(self, temp_pdf, temp_dir):
        output = temp_dir / "grid.png"
        with fake_poppler():
            code = main(["preview", str(temp_pdf), "-r", "1:90", "-r", "2:0", "-o", str(output)])
        assert code == 0
        with Image.open(output) as image:
            assert image.width > 0

    def test_single_page(self, temp_pdf, temp_dir):
        output = temp_dir / "page.png"
        with fake_poppler():
            code = main(["preview", str(temp_pdf), "--page", "2", "--size", "400x300", "-o", str(output)])
        assert code == 0
        with Image.open(output) as image:
            # Letter page fit into 400x300 at 95%
            assert image.size == (220, 285)

    def test_single_page_out_of_range(self, temp_pdf, temp_dir):
        with fake_poppler():
            code = main(["preview", str(temp_pdf), "--page", "9", "-o", str(temp_dir / "x.png")])
        assert code == 1
