"""Tests for UI display functions."""

from __future__ import annotations

from io import StringIO

import pytest
from rich.console import Console

from waps_survey.storage.models import Sample, ScanBatch
from waps_survey.ui import display


@pytest.fixture
def console(monkeypatch: pytest.MonkeyPatch) -> StringIO:
    """Route display output into a buffer."""
    buffer = StringIO()
    monkeypatch.setattr(display, "_console", Console(file=buffer, width=120, force_terminal=False))
    return buffer


@pytest.fixture
def batches() -> list[ScanBatch]:
    return [
        ScanBatch(
            location="Location 1",
            samples=(
                Sample(id="aa:01", label="Home", level=-40),
                Sample(id="aa:02", label="Cafe", level=-70),
            ),
        ),
        ScanBatch(location="Location 1", samples=(Sample(id="aa:01", label="Home", level=-44),), source="cached"),
        ScanBatch(location="Location 1"),
    ]


class TestPrintBanner:
    """Tests for print_banner function."""

    def test_print_banner_with_title(self, console: StringIO):
        display.print_banner("Test Title")
        assert "Test Title" in console.getvalue()

    def test_print_banner_with_subtitle(self, console: StringIO):
        display.print_banner("Test Title", "Test Subtitle")
        assert "Test Subtitle" in console.getvalue()

    def test_status_messages(self, console: StringIO):
        display.print_success("done")
        display.print_warning("careful")
        display.print_error("broken")

        output = console.getvalue()
        assert "done" in output
        assert "careful" in output
        assert "broken" in output


class TestDisplayLocationSummary:
    """Tests for display_location_summary function."""

    def test_with_data(self, console: StringIO, batches: list[ScanBatch]):
        display.display_location_summary("Location 1", batches)

        output = console.getvalue()
        assert "Location Stats: Location 1" in output
        assert "-51 dBm" in output
        assert "-70 to -40 dBm (30 diff)" in output

    def test_empty(self, console: StringIO):
        display.display_location_summary("Location 2", [])
        assert "N/A" in console.getvalue()


class TestDisplayEmitters:
    """Tests for display_emitters function."""

    def test_lists_each_emitter_once(self, console: StringIO, batches: list[ScanBatch]):
        display.display_emitters(batches)

        output = console.getvalue()
        assert output.count("aa:01") == 1
        assert "Cafe" in output

    def test_truncates(self, console: StringIO, batches: list[ScanBatch]):
        display.display_emitters(batches, max_rows=1)
        assert "1 more access points" in console.getvalue()

    def test_empty(self, console: StringIO):
        display.display_emitters([])
        assert "No scan data" in console.getvalue()


class TestScanLog:
    """Tests for display_scan_log function."""

    def test_shows_every_scan(self, console: StringIO, batches: list[ScanBatch]):
        display.display_scan_log("Location 1", batches)

        output = console.getvalue()
        assert "cached" in output
        assert "N/A" in output

    def test_last(self, console: StringIO, batches: list[ScanBatch]):
        display.display_scan_log("Location 1", batches, last=1)
        assert "cached" not in console.getvalue()

    def test_empty(self, console: StringIO):
        display.display_scan_log("Location 3", [])
        assert "No scan logs" in console.getvalue()

    def test_summary_only_by_default(self, console: StringIO, batches: list[ScanBatch]):
        display.display_scan_log("Location 1", batches)
        assert "BSSID:" not in console.getvalue()

    def test_detail_lists_access_points(self, console: StringIO, batches: list[ScanBatch]):
        """Each scan lists its access points, or notes that it found none."""
        display.display_scan_log("Location 1", batches, detail=True)

        output = console.getvalue()
        assert "Scan 1 (Location 1)" in output
        assert "RSSI: -40 dBm | BSSID: aa:01" in output
        assert "RSSI: -70 dBm | BSSID: aa:02" in output
        assert "RSSI: -44 dBm | BSSID: aa:01" in output
        assert "(No APs in this scan)" in output

    def test_detail_unmeasured_level(self, console: StringIO):
        batch = ScanBatch(location="Location 2", samples=(Sample(id="bb:01", label="Lab"),))

        display.display_scan_log("Location 2", [batch], detail=True)

        assert "RSSI: N/A | BSSID: bb:01" in console.getvalue()

    def test_detail_respects_last(self, console: StringIO, batches: list[ScanBatch]):
        display.display_scan_log("Location 1", batches, last=1, detail=True)

        output = console.getvalue()
        assert "Scan 3 (Location 1)" in output
        assert "Scan 1 (Location 1)" not in output


def test_create_progress(console: StringIO):
    progress = display.create_progress()
    task = progress.add_task("Location 1", total=3)
    progress.update(task, completed=2)

    assert progress.tasks[0].completed == 2
