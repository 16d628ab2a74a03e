"""Tests for device transport and dispatch."""

import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import numpy as np
import pytest

from motion_display.devices.dispatcher import (
    DeviceDispatcher,
    DispatchResult,
    TransferSession,
)
from motion_display.devices.transport import DirectoryTarget, MemoryTarget, Transport
from motion_display.encoding import FrameEncoder
from motion_display.events import (
    FRAME_ENCODED,
    FRAME_SENT,
    REAL_TIME_MODE_CHANGED,
    STATUS,
)
from motion_display.utils.profiler import FrameProfiler

from conftest import FailingTarget, Recorder, StalledTarget


@pytest.fixture
def make_dispatcher(events):
    created = []

    def _make(targets, **kwargs):
        transport = Transport(targets)
        dispatcher = DeviceDispatcher(transport, FrameEncoder(), events=events, **kwargs)
        created.append((dispatcher, transport))
        return dispatcher

    yield _make
    for dispatcher, transport in created:
        dispatcher.shutdown()
        transport.shutdown()


class TestTransferSession:
    """Tests for the rotating transfer id."""

    def test_starts_at_one(self):
        """The first id handed out is 1."""
        assert TransferSession().next_id() == 1

    def test_wraps_after_59(self):
        """Ids run 1..59 and then start again at 1; 0 never appears."""
        session = TransferSession()
        ids = [session.next_id() for _ in range(120)]
        assert ids[:59] == list(range(1, 60))
        assert ids[59] == 1
        assert 0 not in ids
        assert max(ids) == 59

    def test_reset(self):
        """Reset goes back to 1."""
        session = TransferSession()
        session.next_id()
        session.next_id()
        session.reset()
        assert session.current == 1

    def test_invalid_start(self):
        """Start ids outside 1..59 are rejected."""
        with pytest.raises(ValueError):
            TransferSession(start=0)

    def test_concurrent_callers_never_share_an_id(self):
        """Under contention every id is handed out exactly once per wrap."""
        session = TransferSession()
        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(lambda _: session.next_id(), range(59 * 4)))
        counts = Counter(ids)
        assert set(counts) == set(range(1, 60))
        assert set(counts.values()) == {4}


class TestTransport:
    """Tests for device fan-out."""

    def test_exception_counts_as_failure(self):
        """A raising device reports False without affecting others."""
        ok = MemoryTarget("ok")
        transport = Transport([ok, FailingTarget("bad")])
        try:
            results = transport.send(b"jpeg", 3)
        finally:
            transport.shutdown()
        assert results == {"ok": True, "bad": False}
        assert ok.last_frame == (3, b"jpeg")

    def test_no_targets(self):
        """Fan-out over nothing returns an empty map."""
        transport = Transport()
        try:
            assert transport.keep_alive(0) == {}
        finally:
            transport.shutdown()

    def test_add_remove(self):
        """Targets are keyed by device id."""
        transport = Transport()
        try:
            transport.add_target(MemoryTarget("a"))
            assert transport.list_targets() == ["a"]
            assert transport.remove_target("a") is True
            assert transport.remove_target("a") is False
        finally:
            transport.shutdown()

    def test_directory_target_writes_files(self, tmp_path):
        """Frames land in per-id files; keep-alive writes its timestamp."""
        target = DirectoryTarget(str(tmp_path / "out"))
        assert target.send_frame(b"abc", 7)
        assert (tmp_path / "out" / "frame_07.jpg").read_bytes() == b"abc"
        assert target.keep_alive(1234)
        assert (tmp_path / "out" / "keepalive").read_text() == "1234"


class TestSendEncoded:
    """Tests for synchronous aggregation."""

    def test_partial_failure(self, make_dispatcher, events):
        """Two of three devices succeeding still counts as sent."""
        targets = [MemoryTarget("a"), MemoryTarget("b"), FailingTarget("c")]
        dispatcher = make_dispatcher(targets)
        sent = Recorder()
        status = Recorder()
        events.subscribe(FRAME_SENT, sent)
        events.subscribe(STATUS, status)

        result = dispatcher.send_encoded(b"x" * 10, quality=80)
        assert result.succeeded == 2
        assert result.total == 3
        assert result.ok
        assert result.failed_devices == ["c"]
        assert sent.items == [result]
        assert status.items[-1] == "Frame #1 sent to 2/3 devices (ID: 1, Size: 10 bytes)"

    def test_total_failure(self, make_dispatcher, events):
        """No acknowledgements: status reports failure and no frame_sent."""
        dispatcher = make_dispatcher([FailingTarget("a"), FailingTarget("b", raises=False)])
        sent = Recorder()
        status = Recorder()
        events.subscribe(FRAME_SENT, sent)
        events.subscribe(STATUS, status)

        result = dispatcher.send_encoded(b"data")
        assert not result.ok
        assert sent.items == []
        assert status.items == ["Failed to send frame to any devices"]
        assert dispatcher.stats()['frames_failed'] == 1

    def test_transfer_id_advances_per_frame(self, make_dispatcher, memory_targets):
        """Consecutive frames carry consecutive transfer ids."""
        dispatcher = make_dispatcher(memory_targets)
        ids = [dispatcher.send_encoded(b"f").transfer_id for _ in range(3)]
        assert ids == [1, 2, 3]
        assert [tid for tid, _ in memory_targets[0].frames] == [1, 2, 3]

    def test_failed_frame_still_consumes_id(self, make_dispatcher):
        """The id advances even when no device acknowledged."""
        dispatcher = make_dispatcher([FailingTarget()])
        dispatcher.send_encoded(b"f")
        assert dispatcher.session.current == 2

    def test_default_quality_is_encoder_quality(self, make_dispatcher, memory_targets):
        """Without an explicit quality the encoder's current setting is reported."""
        dispatcher = make_dispatcher(memory_targets)
        dispatcher.encoder.quality = 42
        assert dispatcher.send_encoded(b"f").quality == 42


class TestSubmit:
    """Tests for background encode and send."""

    def test_submit_resolves_to_result(self, make_dispatcher, memory_targets,
                                       gradient_frame, events):
        """The future yields a DispatchResult; devices receive JPEG bytes."""
        dispatcher = make_dispatcher(memory_targets)
        encoded = Recorder()
        events.subscribe(FRAME_ENCODED, encoded)

        result = dispatcher.submit(gradient_frame, quality=70).result(timeout=10)
        assert isinstance(result, DispatchResult)
        assert result.succeeded == 2
        assert result.quality == 70
        assert memory_targets[0].last_frame[1].startswith(b"\xff\xd8")
        assert len(encoded) == 1

    def test_encode_failure_drops_frame(self, make_dispatcher, memory_targets):
        """A frame the encoder rejects is dropped, not sent."""
        dispatcher = make_dispatcher(memory_targets)
        bogus = SimpleNamespace(pixels=np.zeros((2, 2, 3), dtype=np.uint8),
                                pixel_format="RGBA")
        assert dispatcher.submit(bogus).result(timeout=10) is None
        assert memory_targets[0].frames_received == 0
        assert dispatcher.stats()['frames_dropped'] == 1
        assert dispatcher.session.current == 1

    def test_profiler_receives_dispatch_time(self, events, memory_targets, gradient_frame):
        """Dispatch durations are recorded once the dispatcher finishes."""
        profiler = FrameProfiler()
        transport = Transport(memory_targets)
        dispatcher = DeviceDispatcher(transport, FrameEncoder(), events=events,
                                      profiler=profiler)
        dispatcher.submit(gradient_frame)
        dispatcher.shutdown(wait=True)
        transport.shutdown()
        assert dispatcher.stats()['in_flight'] == 0
        assert dispatcher.stats()['frames_sent'] == 1
        assert profiler.summary()['dispatch_async']['count'] == 1

    def test_quality_read_once_per_frame(self, make_dispatcher, gradient_frame):
        """Quality changes during dispatch never mix inside one frame."""
        target = MemoryTarget("m", history=64)
        dispatcher = make_dispatcher([target], max_pending=64)
        encoder = dispatcher.encoder
        reference = {q: encoder.encode(gradient_frame, q).data for q in (10, 95)}
        encoder.quality = 10
        stop = threading.Event()

        def flip():
            while not stop.is_set():
                for q in (95, 10):
                    encoder.quality = q

        flipper = threading.Thread(target=flip)
        flipper.start()
        try:
            futures = [dispatcher.submit(gradient_frame) for _ in range(40)]
            results = [f.result(timeout=10) for f in futures]
        finally:
            stop.set()
            flipper.join()

        received = dict(target.frames)
        for result in results:
            assert result.quality in reference
            assert received[result.transfer_id] == reference[result.quality]


class TestBacklog:
    """Tests for the bounded dispatch backlog."""

    def test_stalled_device_bounds_backlog(self, make_dispatcher, gradient_frame, events):
        """With the worker stuck only max_pending frames wait; older ones are dropped."""
        target = StalledTarget()
        dispatcher = make_dispatcher([target], max_workers=1, max_pending=3)
        status = Recorder()
        events.subscribe(STATUS, status)
        try:
            first = dispatcher.submit(gradient_frame)
            assert target.entered.wait(timeout=10)
            futures = [dispatcher.submit(gradient_frame) for _ in range(20)]

            stats = dispatcher.stats()
            assert stats['pending'] == 3
            assert stats['in_flight'] == 4
            assert stats['backlog_dropped'] == 17
            assert all(f.result(timeout=1) is None for f in futures[:17])
            assert status.items[-1] == ("Devices falling behind, dropped oldest "
                                        "pending frame (17 dropped)")
        finally:
            target.release.set()

        assert first.result(timeout=10).transfer_id == 1
        assert [f.result(timeout=10).transfer_id for f in futures[17:]] == [2, 3, 4]
        dispatcher.shutdown(wait=True)
        assert target.transfer_ids == [1, 2, 3, 4]
        assert dispatcher.stats()['in_flight'] == 0
        assert dispatcher.stats()['frames_sent'] == 4

    def test_submit_after_shutdown(self, make_dispatcher, memory_targets, gradient_frame):
        """A shut-down dispatcher refuses new frames."""
        dispatcher = make_dispatcher(memory_targets)
        dispatcher.shutdown()
        with pytest.raises(RuntimeError):
            dispatcher.submit(gradient_frame)

    def test_keep_alive_not_queued_twice(self, make_dispatcher, gradient_frame):
        """A keep-alive still waiting behind a stuck worker is reused."""
        target = StalledTarget()
        dispatcher = make_dispatcher([target], max_workers=1)
        try:
            dispatcher.submit(gradient_frame)
            assert target.entered.wait(timeout=10)
            first = dispatcher.submit_keep_alive(1)
            assert dispatcher.submit_keep_alive(2) is first
        finally:
            target.release.set()
        first.result(timeout=10)
        assert dispatcher.stats()['keep_alives_sent'] == 1


class TestRealTimeMode:
    """Tests for real-time mode switching."""

    def test_flag_follows_acknowledged_request(self, make_dispatcher, memory_targets, events):
        """Enabling flips the flag and notifies once."""
        dispatcher = make_dispatcher(memory_targets)
        changes = Recorder()
        events.subscribe(REAL_TIME_MODE_CHANGED, changes)

        results = dispatcher.set_real_time_mode(True)
        dispatcher.set_real_time_mode(True)
        assert results == {"mem-0": True, "mem-1": True}
        assert dispatcher.real_time_enabled is True
        assert memory_targets[0].real_time is True
        assert changes.items == [True]

    def test_flag_unchanged_without_ack(self, make_dispatcher, events):
        """If no device acknowledges, the flag stays as it was."""
        dispatcher = make_dispatcher([FailingTarget()])
        status = Recorder()
        events.subscribe(STATUS, status)

        dispatcher.set_real_time_mode(True)
        assert dispatcher.real_time_enabled is False
        assert "Failed to enable" in status.items[-1]

    def test_partial_ack_enables(self, make_dispatcher):
        """One acknowledging device is enough."""
        dispatcher = make_dispatcher([MemoryTarget("a"), FailingTarget("b")])
        dispatcher.set_real_time_mode(True)
        assert dispatcher.real_time_enabled is True


class TestKeepAlive:
    """Tests for keep-alive pings."""

    def test_keep_alive_timestamp(self, make_dispatcher, memory_targets):
        """Every device receives the timestamp."""
        dispatcher = make_dispatcher(memory_targets)
        results = dispatcher.keep_alive(1700000000)
        assert all(results.values())
        assert memory_targets[1].last_keep_alive == 1700000000
        assert dispatcher.stats()['keep_alives_sent'] == 1

    def test_keep_alive_defaults_to_wall_clock(self, make_dispatcher, memory_targets):
        """Without a timestamp the current unix time is used."""
        dispatcher = make_dispatcher(memory_targets)
        dispatcher.submit_keep_alive().result(timeout=10)
        assert memory_targets[0].last_keep_alive > 1600000000
