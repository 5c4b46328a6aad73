"""
ChildFirst Tabular Export Tests

Coverage:
- Scenario B (1 header + 2 rows, unquoted plain fields)
- Minimal quoting for commas, quotes and line breaks
- Empty export is the header only
"""

import csv
import io
from datetime import timedelta, timezone

from childfirst.export import backup_filename, court_report_filename, timeline_csv_filename
from childfirst.export.tabular import HEADER, export_csv, write_csv

from conftest import make_incident

UTC = timezone.utc


class TestScenarioB:

    def test_two_records_three_lines(self, scenario_incidents):
        text = export_csv(scenario_incidents, tz=UTC)
        lines = text.split("\n")
        assert len(lines) == 3
        assert lines[0] == "Date,Category,Severity,Location,People Involved,Transcript"
        assert lines[1] == "2024-01-01 10:00:00,Meltdown,2,,,t1"
        assert lines[2] == "2024-01-02 10:00:00,Meltdown,5,,Child,t2"


class TestQuoting:

    def test_comma_and_quote_escaped(self):
        incident = make_incident(
            "q",
            transcript='He said "no", then left',
            people=("Child", "Teacher"),
            location="-37.813600, 144.963100",
        )
        text = export_csv([incident], tz=UTC)
        row = text.split("\n")[1]
        assert row == (
            '2024-01-01 10:00:00,Meltdown,3,"-37.813600, 144.963100",'
            'Child; Teacher,"He said ""no"", then left"'
        )

    def test_newline_in_transcript_round_trips(self):
        incident = make_incident("n", transcript="Line one\nLine two")
        rows = list(csv.reader(io.StringIO(export_csv([incident], tz=UTC))))
        assert len(rows) == 2
        assert rows[1][5] == "Line one\nLine two"

    def test_rows_follow_given_order(self, scenario_incidents):
        text = export_csv(list(reversed(scenario_incidents)), tz=UTC)
        assert [row[5] for row in csv.reader(io.StringIO(text))][1:] == ["t2", "t1"]


class TestFormatting:

    def test_empty_is_header_only(self):
        assert export_csv([]) == ",".join(HEADER)

    def test_timezone_applied(self):
        incident = make_incident("tz", "2024-01-01T23:30:00Z")
        tz = timezone(timedelta(hours=10))
        assert export_csv([incident], tz=tz).split("\n")[1].startswith("2024-01-02 09:30:00,")

    def test_write_csv(self, tmp_path, scenario_incidents):
        path = write_csv(tmp_path / "out" / timeline_csv_filename(), scenario_incidents, tz=UTC)
        assert path.name == "childfirst-timeline-data.csv"
        assert path.read_text(encoding="utf-8") == export_csv(scenario_incidents, tz=UTC)


class TestFilenames:

    def test_dated_filenames(self):
        generated = "2024-06-15T12:00:00+00:00"
        assert court_report_filename(generated).startswith("childfirst-court-report-2024-06-1")
        assert court_report_filename(generated).endswith(".pdf")
        assert backup_filename(generated).startswith("childfirst-backup-2024-06-1")
        assert backup_filename(generated).endswith(".json")
