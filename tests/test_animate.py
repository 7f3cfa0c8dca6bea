import json
import threading
from unittest.mock import patch

import httpx
import pytest

from nightmare.presets import CAMERA_MOTION_DIRECTIVES
from nightmare.pipeline.animate import animate_image
from nightmare.pipeline.errors import PollTimeoutError, RemoteServiceError

OPERATION = "models/veo-2.0-generate-001/operations/op123"
VIDEO_URI = "https://files.example.com/v1beta/files/abc:download?alt=media"

DONE = {
    "done": True,
    "response": {
        "generateVideoResponse": {
            "generatedSamples": [{"video": {"uri": VIDEO_URI}}],
        }
    },
}


class FakeVeo:
    """Routes submit, poll and download requests; ``polls`` is replayed in order."""

    def __init__(self, polls):
        self.polls = list(polls)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path.endswith(":predictLongRunning"):
            return httpx.Response(200, json={"name": OPERATION})
        if request.url.path.endswith("/operations/op123"):
            poll = self.polls.pop(0)
            if isinstance(poll, Exception):
                raise poll
            return httpx.Response(200, json=poll)
        if request.url.host == "files.example.com":
            return httpx.Response(200, content=b"MP4-BYTES")
        return httpx.Response(404)


def _animate(run_with_mock, fake, statuses, plan=("Warming up...", "Rendering..."), **overrides):
    kwargs = dict(
        video_prompt="she crawls out of the frame",
        video_negative_prompt="",
        camera_motion="Camera Shake (Static)",
    )
    kwargs.update(overrides)
    return run_with_mock(fake, lambda c: animate_image(
        "QUJD", "image/jpeg", statuses.append, list(plan),
        client=c, poll_interval=0, **kwargs,
    ))


def test_polls_until_done_and_stores_video(api_key, media_dir, run_with_mock):
    fake = FakeVeo([{"done": False}, DONE])
    statuses = []

    urls = _animate(run_with_mock, fake, statuses)

    assert statuses == ["Warming up...", "Rendering..."]
    assert len(urls) == 1
    assert urls[0].startswith("/media/nightmare_") and urls[0].endswith(".mp4")
    stored = media_dir / urls[0].rsplit("/", 1)[1]
    assert stored.read_bytes() == b"MP4-BYTES"

    download = fake.requests[-1]
    assert download.url.params["key"] == "test-key"


def test_request_carries_image_prompt_and_motion(api_key, media_dir, run_with_mock):
    fake = FakeVeo([DONE])

    _animate(
        run_with_mock, fake, [],
        video_negative_prompt="blood",
        camera_motion="Slow Zoom In",
    )

    body = json.loads(fake.requests[0].content)
    instance = body["instances"][0]
    assert instance["image"] == {"bytesBase64Encoded": "QUJD", "mimeType": "image/jpeg"}
    assert instance["prompt"].startswith("she crawls out of the frame")
    assert CAMERA_MOTION_DIRECTIVES["Slow Zoom In"] in instance["prompt"]
    assert body["parameters"]["negativePrompt"] == "blood"


def test_status_plan_cycles_while_pending(api_key, media_dir, run_with_mock):
    fake = FakeVeo([{"done": False}, {"done": False}, {"done": False}, DONE])
    statuses = []

    _animate(run_with_mock, fake, statuses, plan=("a", "b"))

    assert statuses == ["a", "b", "a", "b"]


def test_operation_error_is_reported(api_key, media_dir, run_with_mock):
    fake = FakeVeo([{"done": True, "error": {"code": 3, "message": "Image is unsafe"}}])

    with pytest.raises(RemoteServiceError, match="Image is unsafe"):
        _animate(run_with_mock, fake, [])


def test_filtered_result_is_reported(api_key, media_dir, run_with_mock):
    fake = FakeVeo([{
        "done": True,
        "response": {"generateVideoResponse": {"raiMediaFilteredReasons": ["Too scary."]}},
    }])

    with pytest.raises(RemoteServiceError, match="safety filters: Too scary."):
        _animate(run_with_mock, fake, [])


def test_poll_timeout(api_key, media_dir, run_with_mock):
    fake = FakeVeo([{"done": False}, httpx.ReadTimeout("read timed out")])

    with pytest.raises(PollTimeoutError):
        _animate(run_with_mock, fake, [])


def test_unknown_camera_motion_fails_before_any_request(api_key, run_with_mock):
    fake = FakeVeo([])

    with pytest.raises(ValueError):
        _animate(run_with_mock, fake, [], camera_motion="Barrel Roll")

    assert fake.requests == []


def test_async_status_callback(api_key, media_dir, run_with_mock):
    fake = FakeVeo([DONE])
    statuses = []

    async def on_status(text):
        statuses.append(text)

    run_with_mock(fake, lambda c: animate_image(
        "QUJD", "image/jpeg", on_status, ["Warming up..."], "", "", "Orbit",
        client=c, poll_interval=0,
    ))

    assert statuses == ["Warming up..."]


def test_video_is_written_off_the_event_loop(api_key, media_dir, run_with_mock):
    fake = FakeVeo([DONE])
    writer_threads = []

    def fake_save(data, content_type="video/mp4"):
        writer_threads.append(threading.get_ident())
        return "/media/written.mp4"

    with patch("nightmare.pipeline.animate.save_video", fake_save):
        urls = _animate(run_with_mock, fake, [])

    assert urls == ["/media/written.mp4"]
    assert writer_threads and writer_threads[0] != threading.get_ident()
