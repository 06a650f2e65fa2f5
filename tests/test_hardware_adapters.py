"""
Unit tests for the production renderer and printer driver.

subprocess.run and shutil.which are patched, so neither Chromium nor CUPS
needs to be installed.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from core.exceptions import (
    ConversionError,
    PrinterEnumerationError,
    PrinterError,
    StageTimeoutError,
)
from modules.pdf_renderer import ChromiumPdfRenderer, count_pdf_pages
from modules.printer_driver import CupsPrinterDriver, is_virtual_printer

from tests.conftest import write_blank_pdf


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestCountPdfPages:

    def test_counts_pages(self, tmp_path):
        path = tmp_path / "ticket.pdf"
        write_blank_pdf(path, pages=3)
        assert count_pdf_pages(path) == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConversionError):
            count_pdf_pages(tmp_path / "missing.pdf")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")
        with pytest.raises(ConversionError):
            count_pdf_pages(path)

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "garbage.pdf"
        path.write_bytes(b"not a pdf at all")
        with pytest.raises(ConversionError):
            count_pdf_pages(path)


class TestChromiumPdfRenderer:

    @patch("modules.pdf_renderer.shutil.which", return_value=None)
    def test_no_browser_installed(self, mock_which, tmp_path):
        renderer = ChromiumPdfRenderer()
        with patch("modules.pdf_renderer.subprocess.run") as mock_run:
            with pytest.raises(ConversionError) as exc_info:
                renderer.render_pdf("<p>ticket</p>", tmp_path / "out.pdf")
        assert "CHROMIUM_EXECUTABLE" in exc_info.value.message
        mock_run.assert_not_called()

    @patch("modules.pdf_renderer.subprocess.run")
    @patch("modules.pdf_renderer.shutil.which")
    def test_first_browser_on_path_is_used(self, mock_which, mock_run, tmp_path):
        mock_which.side_effect = lambda name: "/usr/bin/chromium-browser" if name == "chromium-browser" else None
        mock_run.return_value = completed()
        output = tmp_path / "out.pdf"

        ChromiumPdfRenderer(timeout_seconds=12).render_pdf("<p>ticket</p>", output)

        command = mock_run.call_args.args[0]
        assert command[0] == "/usr/bin/chromium-browser"
        assert "--headless=new" in command
        assert f"--print-to-pdf={output}" in command
        assert command[-1].startswith("file://")
        assert mock_run.call_args.kwargs["timeout"] == 12

    @patch("modules.pdf_renderer.subprocess.run")
    @patch("modules.pdf_renderer.shutil.which")
    def test_configured_executable_skips_lookup(self, mock_which, mock_run, tmp_path):
        mock_run.return_value = completed()

        ChromiumPdfRenderer(executable="/opt/chrome/chrome").render_pdf("<p>ticket</p>", tmp_path / "out.pdf")

        assert mock_run.call_args.args[0][0] == "/opt/chrome/chrome"
        mock_which.assert_not_called()

    @patch("modules.pdf_renderer.subprocess.run")
    def test_html_written_for_browser(self, mock_run, tmp_path):
        seen = {}

        def run(command, **kwargs):
            source = command[-1][len("file://"):]
            with open(source, encoding="utf-8") as f:
                seen["html"] = f.read()
            return completed()

        mock_run.side_effect = run
        ChromiumPdfRenderer(executable="chromium").render_pdf("<p>#001 - Ready</p>", tmp_path / "out.pdf")

        assert seen["html"] == "<p>#001 - Ready</p>"

    @patch("modules.pdf_renderer.subprocess.run")
    def test_timeout(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="chromium", timeout=5)

        with pytest.raises(StageTimeoutError) as exc_info:
            ChromiumPdfRenderer(executable="chromium", timeout_seconds=5).render_pdf(
                "<p>ticket</p>", tmp_path / "out.pdf"
            )
        assert exc_info.value.stage == "conversion"
        assert exc_info.value.timeout_seconds == 5

    @patch("modules.pdf_renderer.subprocess.run")
    def test_nonzero_exit_reports_last_stderr_line(self, mock_run, tmp_path):
        mock_run.return_value = completed(
            returncode=1, stderr="[0101/120000:WARNING] noise\nERROR: page crashed\n"
        )

        with pytest.raises(ConversionError) as exc_info:
            ChromiumPdfRenderer(executable="chromium").render_pdf("<p>ticket</p>", tmp_path / "out.pdf")
        assert exc_info.value.message == "Renderer failed: ERROR: page crashed"

    @patch("modules.pdf_renderer.subprocess.run")
    def test_nonzero_exit_without_stderr(self, mock_run, tmp_path):
        mock_run.return_value = completed(returncode=139)

        with pytest.raises(ConversionError) as exc_info:
            ChromiumPdfRenderer(executable="chromium").render_pdf("<p>ticket</p>", tmp_path / "out.pdf")
        assert exc_info.value.message == "Renderer failed: exit code 139"

    @patch("modules.pdf_renderer.subprocess.run")
    def test_launch_failure(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'chromium'")

        with pytest.raises(ConversionError) as exc_info:
            ChromiumPdfRenderer(executable="chromium").render_pdf("<p>ticket</p>", tmp_path / "out.pdf")
        assert exc_info.value.message.startswith("Failed to launch renderer")


class TestCupsListPrinters:

    @patch("modules.printer_driver.subprocess.run")
    def test_parses_lpstat_output(self, mock_run):
        mock_run.return_value = completed(stdout="Kitchen_TM_T20\n\n  Bar_Printer  \n")

        assert CupsPrinterDriver(list_timeout_seconds=4).list_printers() == ["Kitchen_TM_T20", "Bar_Printer"]
        assert mock_run.call_args.args[0] == ["lpstat", "-e"]
        assert mock_run.call_args.kwargs["timeout"] == 4

    @patch("modules.printer_driver.subprocess.run")
    def test_no_destinations_is_empty(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="lpstat: No destinations added.\n")
        assert CupsPrinterDriver().list_printers() == []

    @patch("modules.printer_driver.subprocess.run")
    def test_scheduler_down(self, mock_run):
        mock_run.return_value = completed(returncode=1, stderr="lpstat: Scheduler is not running.\n")

        with pytest.raises(PrinterEnumerationError) as exc_info:
            CupsPrinterDriver().list_printers()
        assert exc_info.value.message == "lpstat: Scheduler is not running."

    @patch("modules.printer_driver.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="lpstat", timeout=10)

        with pytest.raises(PrinterEnumerationError) as exc_info:
            CupsPrinterDriver().list_printers()
        assert exc_info.value.message == "Timed out listing printers"

    @patch("modules.printer_driver.subprocess.run")
    def test_lpstat_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("lpstat")

        with pytest.raises(PrinterEnumerationError):
            CupsPrinterDriver().list_printers()


class TestCupsPrintFile:

    @patch("modules.printer_driver.subprocess.run")
    def test_submits_with_lp(self, mock_run, tmp_path):
        mock_run.return_value = completed(stdout="request id is Kitchen_TM_T20-7 (1 file(s))\n")
        path = tmp_path / "print_2024-01-01_12-00-00.pdf"

        CupsPrinterDriver(dispatch_timeout_seconds=9).print_file(path, "Kitchen_TM_T20")

        assert mock_run.call_args.args[0] == [
            "lp", "-d", "Kitchen_TM_T20", "-t", "print_2024-01-01_12-00-00.pdf", str(path),
        ]
        assert mock_run.call_args.kwargs["timeout"] == 9

    @patch("modules.printer_driver.subprocess.run")
    def test_rejected_job(self, mock_run, tmp_path):
        mock_run.return_value = completed(
            returncode=1, stderr="lp: The printer or class does not exist.\n"
        )

        with pytest.raises(PrinterError) as exc_info:
            CupsPrinterDriver().print_file(tmp_path / "a.pdf", "Gone")
        assert exc_info.value.message == "lp: The printer or class does not exist."
        assert exc_info.value.details["printer_name"] == "Gone"

    @patch("modules.printer_driver.subprocess.run")
    def test_rejected_job_without_stderr(self, mock_run, tmp_path):
        mock_run.return_value = completed(returncode=2)

        with pytest.raises(PrinterError) as exc_info:
            CupsPrinterDriver().print_file(tmp_path / "a.pdf", "Kitchen_TM_T20")
        assert exc_info.value.message == "lp exited with 2"

    @patch("modules.printer_driver.subprocess.run")
    def test_timeout(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="lp", timeout=30)

        with pytest.raises(StageTimeoutError) as exc_info:
            CupsPrinterDriver(dispatch_timeout_seconds=30).print_file(tmp_path / "a.pdf", "Kitchen_TM_T20")
        assert exc_info.value.stage == "dispatch"

    @patch("modules.printer_driver.subprocess.run")
    def test_lp_missing(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("lp")

        with pytest.raises(PrinterError):
            CupsPrinterDriver().print_file(tmp_path / "a.pdf", "Kitchen_TM_T20")


@pytest.mark.parametrize("name, expected", [
    ("Microsoft Print to PDF", True),
    ("Microsoft XPS Document Writer", True),
    ("OneNote (Desktop)", True),
    ("Kitchen_TM_T20", False),
    ("", False),
])
def test_is_virtual_printer(name, expected):
    keywords = ("pdf", "xps", "onenote", "fax", "print to", "send to")
    assert is_virtual_printer(name, keywords) is expected
