"""Unit tests for the per-line RecordingService."""

from pathlib import Path

import pytest

from readaloud.audio.capture import DeviceUnavailableError
from readaloud.config import ReadAloudConfig
from readaloud.models.audio import RecordingState
from readaloud.services.recording_service import RecordingService


@pytest.fixture
def config(config_file):
    return ReadAloudConfig(config_file)


@pytest.fixture
def make_service(config, fake_loop, fake_microphone):
    services = []

    def build(microphone=None, **config_overrides):
        for key, value in config_overrides.items():
            config.set(key.replace('__', '.'), value)
        service = RecordingService(config, loop=fake_loop, microphone=microphone or fake_microphone)
        services.append(service)
        return service

    yield build
    for service in services:
        service.cleanup()


@pytest.mark.unit
class TestRecordingService:
    """Test cases for RecordingService."""

    def test_records_line_until_silence(self, make_service, fake_loop, fake_microphone, silent_chunk):
        service = make_service()

        started = service.start_recording(0)
        assert started["success"] is True
        assert started["line_index"] == 0
        assert started["state"] == "calibrating"
        assert service.recorder.session.max_duration_ms == 4000

        fake_loop.advance(2.0)
        fake_microphone.emit(silent_chunk)
        fake_loop.advance(2.5)

        assert service.recorder.state is RecordingState.IDLE
        result = service.get_result(0)
        assert result is not None
        assert result.session_id == started["session_id"]
        assert result.is_wav

    def test_already_recording(self, make_service):
        service = make_service()
        first = service.start_recording(0)

        second = service.start_recording(1)

        assert second["success"] is False
        assert second["error"] == "Already recording"
        assert second["session_id"] == first["session_id"]
        assert second["line_index"] == 0

    def test_invalid_line_index(self, make_service):
        assert make_service().start_recording(-1)["success"] is False

    def test_stop_when_idle(self, make_service):
        assert make_service().stop_recording() == {"success": False, "error": "Not recording"}

    def test_toggle(self, make_service, fake_loop, fake_microphone, silent_chunk):
        service = make_service()

        assert service.toggle(1)["success"] is True
        fake_loop.advance(2.0)
        fake_microphone.emit(silent_chunk)
        fake_loop.advance(0.3)

        stopped = service.toggle(1)
        fake_loop.run_pending()

        assert stopped["success"] is True
        assert stopped["line_index"] == 1
        assert service.get_result(1) is not None
        assert service.get_result(0) is None

    def test_device_unavailable(self, make_service, microphone_factory):
        service = make_service(microphone=microphone_factory(fail_with=DeviceUnavailableError("no input")))

        started = service.start_recording(0)

        assert started["success"] is False
        assert started["error"] == "device unavailable: no input"
        assert service.recorder.state is RecordingState.IDLE

    def test_no_audio_recorded_as_failure(self, make_service, fake_loop):
        service = make_service()
        service.start_recording(0)
        fake_loop.advance(1.0)

        service.stop_recording()
        fake_loop.run_pending()

        assert service.failures[0] == "no audio data"
        assert service.get_result(0) is None

    def test_keywords(self, make_service):
        service = make_service()

        assert service.get_keywords(1) == "How I wonder what you are"
        assert service.get_keywords(7) == ""


@pytest.mark.unit
class TestRecordingServiceTestMode:
    """Per-line bypass assets."""

    def test_line_asset_delivered(self, make_service, fake_loop, fake_microphone, sample_audio_file):
        service = make_service(recorder__test_mode=True)

        started = service.start_recording(0)
        fake_loop.run_pending()

        assert started["state"] == "processing"
        assert service.get_result(0).audio_data == Path(sample_audio_file).read_bytes()
        assert service.get_result(0).from_test_asset is True
        assert fake_microphone.open_calls == 0

    def test_missing_line_asset(self, make_service, fake_loop):
        service = make_service(recorder__test_mode=True)

        service.start_recording(1)
        fake_loop.run_pending()

        assert service.get_result(1) is None
        assert "missing.wav" in service.failures[1]

    def test_line_without_asset_uses_default(self, make_service, fake_loop):
        service = make_service(recorder__test_mode=True)

        service.start_recording(5)
        fake_loop.run_pending()

        assert service.get_result(5) is not None

    def test_saves_recordings(self, make_service, fake_loop, config):
        service = make_service(recorder__test_mode=True, storage__save_recordings=True)

        service.start_recording(0)
        fake_loop.run_pending()

        info = service.saved_sessions[0]
        saved = Path(config.get_data_directory()) / "sessions" / info.session_id / "line_1.wav"
        assert saved.exists()
        assert info.line_index == 0

    def test_cleanup_stops_listening(self, make_service, fake_loop):
        service = make_service(recorder__test_mode=True)
        service.start_recording(0)

        service.cleanup()
        fake_loop.run_pending()

        assert service.get_result(0) is None
        assert service.recorder.session is None
