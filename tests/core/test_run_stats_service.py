# tests/core/test_run_stats_service.py
import io
from unittest.mock import patch

from aggregator.elements import Elements
from ingest.services.xml_parse_service import XmlParseService
from xmlshape.core.services.run_stats_service import ScanTimer, format_summary, run_summary


def test_scan_timer_accumulates_named_phases():
    timer = ScanTimer()

    with patch("xmlshape.core.services.run_stats_service.time.perf_counter", side_effect=[1.0, 3.0, 10.0, 10.5]):
        with timer.phase("parse"):
            pass
        with timer.phase("output"):
            pass

    assert timer.get("parse") == 2.0
    assert timer.get("output") == 0.5
    assert timer.get("missing") == 0.0
    assert timer.total == 2.5


@patch("xmlshape.core.services.run_stats_service.memory_info", return_value={"rss_mb": 12.5, "percent_of_ram": 0.25})
def test_run_summary_reports_every_figure(mock_memory):
    service = XmlParseService()
    elements = Elements()
    for xml in ("<a/>", "<a/>", "<b/>"):
        elements.add(service.parse(io.BytesIO(xml.encode())).root)
    timer = ScanTimer()
    timer.durations.update({"parse": 2.0, "output": 0.5})
    stats = {"files_total": 4, "parsed": 3, "skipped": 1, "empty": 0, "skipped_paths": ["x.xml"]}

    summary = run_summary(stats, elements, timer, workers=2)

    assert summary["roots_aggregated"] == 3
    assert summary["top_level_tags"] == 2
    assert summary["files_per_s"] == 2.0
    assert summary["duration_s"] == 2.5
    assert format_summary(summary, "root") == (
        "Scanned 4 files (3 parsed, 1 skipped, 0 without root) with 2 workers in 2.500s "
        "(parse 2.000s, 2.00 files/s; output 0.500s); "
        "3 roots aggregated, 2 distinct top-level tags; rss 12.50 MB (0.25% of RAM)"
    )
