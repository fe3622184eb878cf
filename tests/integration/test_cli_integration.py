"""Integration tests for the pdft command."""

import io
import json
import subprocess
import sys
from unittest.mock import patch

import pytest
import yaml
from PIL import Image
from pypdf import PdfReader

from pdfturn.cli import main


def run_pdft(*args):
    return subprocess.run(
        [sys.executable, "-m", "pdfturn.cli", *args],
        capture_output=True,
        text=True,
    )


@pytest.mark.integration
class TestCLIIntegration:
    """Test the CLI as a subprocess."""

    def test_help_flag(self):
        result = run_pdft("--help")
        assert result.returncode == 0
        assert "pdft" in result.stdout

    def test_version_flag(self):
        result = run_pdft("--version")
        assert result.returncode == 0
        assert "pdfturn" in result.stdout

    def test_plan_json(self):
        result = run_pdft("plan", "--pages", "3", "-r", "3:180", "-r", "7", "-r", "1:cw", "--indent", "2")
        assert result.returncode == 0
        # 7 clamps onto 3, so the earlier 3:180 entry is dropped
        assert json.loads(result.stdout) == [{"page": 3, "degrees": 90}, {"page": 1, "degrees": 90}]
        assert "Page numbers adjusted" in result.stderr
        assert "Duplicate pages detected" in result.stderr

    def test_rotate_file(self, temp_pdf, temp_dir):
        output = temp_dir / "rotated.pdf"
        result = run_pdft("rotate", str(temp_pdf), "-r", "2:270", "-o", str(output))
        assert result.returncode == 0, result.stderr
        assert "Success!" in result.stdout
        reader = PdfReader(output)
        assert [page.rotation for page in reader.pages] == [0, 270, 0, 0]

    def test_rotate_invalid_config(self, temp_dir, temp_pdf):
        config_path = temp_dir / "bad.yaml"
        config_path.write_text("service:\n  backend: carrier-pigeon\n")
        result = run_pdft("-c", str(config_path), "rotate", str(temp_pdf))
        assert result.returncode == 1
        assert "Configuration error" in result.stderr


@pytest.mark.integration
class TestPipeline:
    """Drive the full open, preview, repair, rotate flow in process."""

    def test_config_file_drives_rotation(self, temp_dir, temp_pdf):
        config_path = temp_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump({"service": {"backend": "local"}, "page_count": {"bytes_per_page": 1000}}, f)

        output = temp_dir / "out.pdf"
        code = main(["-q", "-c", str(config_path), "rotate", str(temp_pdf), "-r", "4:90", "-o", str(output)])

        assert code == 0
        reader = PdfReader(io.BytesIO(output.read_bytes()))
        assert reader.pages[3].rotation == 90

    def test_baked_rotation_changes_page_shape(self, temp_pdf, temp_dir):
        output = temp_dir / "baked.pdf"
        assert main(["-q", "rotate", str(temp_pdf), "-r", "1:90", "--bake", "-o", str(output)]) == 0
        page = PdfReader(output).pages[0]
        assert page.rotation == 0
        assert (float(page.mediabox.width), float(page.mediabox.height)) == (792, 612)

    def test_preview_then_rotate(self, temp_pdf, temp_dir):
        preview = temp_dir / "preview.png"
        rendered = Image.new("RGB", (30, 40), (40, 40, 40))
        with patch("pdf2image.convert_from_bytes", return_value=[rendered]):
            code = main([
                "-q", "preview", str(temp_pdf), "-r", "1:90", "-r", "4:180",
                "--size", "1000x800", "-o", str(preview),
            ])
        assert code == 0
        with Image.open(preview) as image:
            # Two cells in a three column grid
            assert image.size[0] < 1000
            assert image.size[1] > 0

        output = temp_dir / "out.pdf"
        assert main(["-q", "rotate", str(temp_pdf), "-r", "1:90", "-r", "4:180", "-o", str(output)]) == 0
        assert [page.rotation for page in PdfReader(output).pages] == [90, 0, 0, 180]

    def test_preview_without_poppler_offers_fallback(self, temp_pdf, temp_dir, capsys):
        from pdf2image.exceptions import PDFInfoNotInstalledError

        with patch("pdf2image.convert_from_bytes", side_effect=PDFInfoNotInstalledError("missing")):
            code = main(["preview", str(temp_pdf), "--page", "3", "-o", str(temp_dir / "p.png")])

        assert code == 0
        captured = capsys.readouterr()
        assert "Only showing page 3" in captured.err
        assert "#page=3&view=FitH&toolbar=0&navpanes=0" in captured.out
