"""Tests for the pipeline orchestrator."""

import os
import sys

import pytest
import threading

from recordwatch.config import RecordWatchConfig
from recordwatch.exceptions import FolderNotFoundError
from recordwatch.pipeline import RecordWatchPipeline

from conftest import SAMPLE_NAME, read_audit, wait_for, write_wav


def _config(tmp_path, **overrides):
    folder = tmp_path / "recordings"
    folder.mkdir(exist_ok=True)
    values = dict(
        folder_path=folder,
        log_dir=tmp_path / "logs",
        db_path=tmp_path / "data" / "records.db",
        read_duration=False,
        retry_interval_s=60.0,
    )
    values.update(overrides)
    return RecordWatchConfig(**values)


class TestRecordWatchPipeline:
    """Tests for RecordWatchPipeline class."""

    def test_ingest_sample(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            path = pipeline.config.folder_path / SAMPLE_NAME

            assert pipeline.ingest(path) is True

            record = pipeline.store.get(SAMPLE_NAME)
            assert record.call_info == "Dialer%3AMakeCall"
            assert record.external_number == "0707702777"
            assert record.extension == "105"
            assert record.captured_at == "20240805131501"
            assert record.call_reference == "135"

        log = read_audit(tmp_path / "logs")
        assert f"Parse process started for {path}" in log
        assert f"{SAMPLE_NAME} insertion completed." in log
        assert f"{SAMPLE_NAME} record was created." in log

    def test_ingest_reads_duration(self, tmp_path, make_recording):
        path = make_recording(seconds=3.0)
        with RecordWatchPipeline(_config(tmp_path, read_duration=True)) as pipeline:
            assert pipeline.ingest(path) is True
            assert pipeline.store.get(SAMPLE_NAME).duration_seconds == 3

    def test_ingest_twice_is_idempotent(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            path = pipeline.config.folder_path / SAMPLE_NAME

            assert pipeline.ingest(path) is True
            assert pipeline.ingest(path) is True
            assert pipeline.store.count() == 1

        assert f"{SAMPLE_NAME} already exists. Skipping insertion." in read_audit(tmp_path / "logs")

    def test_malformed_name_retried_then_dropped(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            pipeline.queue.enqueue(pipeline.config.folder_path / "badname.wav")

            pipeline.queue.drain_primary()
            assert pipeline.queue.retry_size == 1

            pipeline.queue.drain_retry()
            assert pipeline.queue.retry_size == 0
            assert pipeline.queue.dropped == 1
            assert pipeline.store.count() == 0

        log = read_audit(tmp_path / "logs")
        assert log.count("File name does not match expected format: badname.wav") == 2
        assert "Failed to process file:" in log

    def test_incomplete_file_succeeds_on_retry(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path, read_duration=True)) as pipeline:
            path = pipeline.config.folder_path / SAMPLE_NAME
            path.write_bytes(b"RIFF")

            pipeline.queue.enqueue(path)
            pipeline.queue.drain_primary()
            assert pipeline.queue.retry_size == 1

            write_wav(path, seconds=1.0)
            pipeline.queue.drain_retry()

            assert pipeline.queue.dropped == 0
            assert pipeline.store.get(SAMPLE_NAME).duration_seconds == 1

    def _batch(self, folder):
        return [
            folder / "[A]_101-0700000001_20240101000000(1).wav",
            folder / "[A]_101-0700000002_20240101000000(2).wav",
            folder / "broken.wav",
        ]

    def test_ingest_batch_retries_failures_when_stopped(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            paths = self._batch(pipeline.config.folder_path)

            assert pipeline.ingest_batch(paths) == 2
            assert pipeline.store.count() == 2
            assert pipeline.queue.retry_size == 0
            assert pipeline.queue.dropped == 1

    def test_ingest_batch_leaves_failures_to_retry_timer(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            folder = pipeline.config.folder_path
            pipeline.queue.start()

            assert pipeline.ingest_batch(self._batch(folder)) == 2
            assert pipeline.queue.retry_paths() == [folder / "broken.wav"]
            assert pipeline.queue.dropped == 0

    def test_repeated_collect_does_not_grow_retry_lane(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            write_wav(pipeline.config.folder_path / "badname.wav")

            for _ in range(5):
                assert pipeline.collect() == (1, 0)

            assert pipeline.queue.retry_size == 0
            assert pipeline.queue.dropped == 5

    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs byte file names")
    def test_collect_survives_undecodable_file_name(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            folder = pipeline.config.folder_path
            write_wav(folder / SAMPLE_NAME)
            odd = folder / os.fsdecode(b"[A]_101-0700000002_20240101000000(2)\xff.wav")
            write_wav(odd)

            assert pipeline.collect() == (2, 1)
            assert pipeline.store.list_file_names() == [SAMPLE_NAME]
            assert pipeline.queue.dropped == 1

        log = read_audit(tmp_path / "logs")
        assert "\\udcff" in log
        assert "Failed to process file:" in log

    def test_collect(self, tmp_path, make_recording):
        make_recording("[A]_101-0700000001_20240101000000(1).wav")
        make_recording("[A]_101-0700000002_20240101000000(2).wav", subdir="sub")

        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            assert pipeline.collect() == (2, 2)
            assert pipeline.collect() == (2, 2)
            assert pipeline.store.count() == 2

    def test_collect_empty(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            assert pipeline.collect() == (0, 0)

    def test_scan_other_folder(self, tmp_path):
        other = tmp_path / "other"
        write_wav(other / "x.wav")
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            assert pipeline.scan(other) == [other / "x.wav"]

    def test_concurrent_enqueue_then_drain(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            folder = pipeline.config.folder_path
            paths = [folder / f"[A]_101-07000{i:05d}_20240101000000({i}).wav" for i in range(50)]

            def producer(chunk):
                for path in chunk:
                    pipeline.queue.enqueue(path)
                    pipeline.queue.enqueue(path)

            threads = [threading.Thread(target=producer, args=(paths[i::5],)) for i in range(5)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            pipeline.queue.drain_primary()

            assert pipeline.store.count() == 50
            assert pipeline.queue.retry_size == 0

    def test_start_watches_folder(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            assert pipeline.start() is True
            assert pipeline.start() is False
            assert pipeline.is_running

            write_wav(pipeline.config.folder_path / SAMPLE_NAME)

            assert wait_for(lambda: pipeline.store.count() == 1)

            assert pipeline.stop() is True
            assert not pipeline.is_running
            assert pipeline.stop() is False

    def test_start_missing_folder(self, tmp_path):
        config = _config(tmp_path, folder_path=tmp_path / "missing")
        with RecordWatchPipeline(config) as pipeline:
            with pytest.raises(FolderNotFoundError):
                pipeline.start()
            assert not pipeline.is_running

    def test_status(self, tmp_path):
        with RecordWatchPipeline(_config(tmp_path)) as pipeline:
            pipeline.ingest(pipeline.config.folder_path / SAMPLE_NAME)
            pipeline.queue.enqueue_retry(pipeline.config.folder_path / "bad.wav")

            status = pipeline.status()

        assert status["running"] is False
        assert status["watch_enabled"] is False
        assert status["records"] == 1
        assert status["retry_queue"] == 1
        assert status["primary_queue"] == 0
