"""Tests for the daily audit log."""

import re
import threading
from datetime import date, datetime

from recordwatch.audit import AuditLog
from recordwatch.parser import parse_file_name

from conftest import SAMPLE_NAME


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestAuditLog:
    """Tests for AuditLog class."""

    def test_path_for(self, tmp_path):
        audit = AuditLog(tmp_path)
        assert audit.path_for(date(2024, 8, 5)) == tmp_path / "log_2024-08-05.txt"

    def test_write_creates_daily_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        audit = AuditLog(log_dir, clock=_Clock(datetime(2024, 8, 5, 13, 15, 1)))

        audit.write("File Monitor started")

        content = (log_dir / "log_2024-08-05.txt").read_text(encoding="utf-8")
        assert content == "2024-08-05 13:15:01: File Monitor started\n"

    def test_write_escapes_undecodable_characters(self, tmp_path):
        audit = AuditLog(tmp_path, clock=_Clock(datetime(2024, 8, 5, 9, 0, 0)))

        audit.write("Parse process started for /rec/a\udcff.wav")

        content = (tmp_path / "log_2024-08-05.txt").read_text(encoding="utf-8")
        assert content == "2024-08-05 09:00:00: Parse process started for /rec/a\\udcff.wav\n"

    def test_entries_append(self, tmp_path):
        audit = AuditLog(tmp_path, clock=_Clock(datetime(2024, 8, 5, 9, 0, 0)))
        audit.write("first")
        audit.error("second")

        lines = (tmp_path / "log_2024-08-05.txt").read_text(encoding="utf-8").splitlines()
        assert lines == ["2024-08-05 09:00:00: first", "2024-08-05 09:00:00: second"]

    def test_partitioned_by_day(self, tmp_path):
        clock = _Clock(datetime(2024, 8, 5, 23, 59, 59))
        audit = AuditLog(tmp_path, clock=clock)

        audit.write("before midnight")
        clock.now = datetime(2024, 8, 6, 0, 0, 1)
        audit.write("after midnight")

        assert "before midnight" in (tmp_path / "log_2024-08-05.txt").read_text(encoding="utf-8")
        assert "after midnight" in (tmp_path / "log_2024-08-06.txt").read_text(encoding="utf-8")

    def test_write_record_block(self, tmp_path):
        audit = AuditLog(tmp_path, clock=_Clock(datetime(2024, 8, 5, 13, 15, 1)))
        audit.write_record(parse_file_name(f"/rec/{SAMPLE_NAME}"))

        content = (tmp_path / "log_2024-08-05.txt").read_text(encoding="utf-8")
        assert content.startswith(f"2024-08-05 13:15:01: {SAMPLE_NAME} record was created.\n")
        assert "CallReference: 135\n" in content
        assert "ExternalNumber: 0707702777\n" in content
        assert content.endswith("\n\n")

    def test_write_failure_is_swallowed(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        audit = AuditLog(blocker)

        audit.write("cannot be written")
        audit.write_record(parse_file_name(SAMPLE_NAME))

    def test_mirrors_to_logger(self, tmp_path, caplog):
        audit = AuditLog(tmp_path)
        with caplog.at_level("INFO", logger="recordwatch.audit"):
            audit.write("mirrored message")
        assert "mirrored message" in caplog.text

    def test_concurrent_writes_do_not_interleave(self, tmp_path):
        audit = AuditLog(tmp_path)
        payload = "x" * 200

        def worker(n):
            for i in range(50):
                audit.write(f"worker-{n}-{i}-{payload}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = []
        for path in tmp_path.glob("log_*.txt"):
            lines.extend(path.read_text(encoding="utf-8").splitlines())

        assert len(lines) == 8 * 50
        pattern = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}: worker-\d+-\d+-x{200}$")
        assert all(pattern.match(line) for line in lines)
