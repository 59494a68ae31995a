from __future__ import annotations

import pytest

from mysteryfactory.domain.platforms import SUPPORTED_PLATFORMS, UnsupportedPlatformError
from mysteryfactory.domain.video_states import VIDEO_STATUS_PROCESSING
from mysteryfactory.platforms.base import PlatformError, PlatformOperationNotSupported, PlatformStats
from mysteryfactory.publishing.service import PublicationService, VideoNotReadyError
from tests.conftest import RecordingClient, build_video, build_workspace


def _service_with(client: RecordingClient, requested: list[str] | None = None) -> PublicationService:
    def factory(platform: str):
        if requested is not None:
            requested.append(platform)
        return client

    return PublicationService(client_factory=factory)


def test_publish_video_runs_steps_in_order_once_each() -> None:
    calls: list[str] = []
    service = _service_with(RecordingClient("youtube", calls))

    service.publish_video(build_workspace(), build_video(), "youtube")

    assert calls == ["authenticate", "upload", "publish", "fetch_stats"]


def test_youtube_end_to_end_returns_stats_and_sets_media_id() -> None:
    calls: list[str] = []
    client = RecordingClient("youtube", calls, media_id="yt-42", stats=PlatformStats(views=0))
    video = build_video()

    stats = _service_with(client).publish_video(build_workspace(), video, "youtube")

    assert stats == PlatformStats(views=0)
    assert stats.views == 0
    assert video.external_id("youtube") == "yt-42"


@pytest.mark.parametrize(
    ("fail_on", "expected_calls", "media_id_kept"),
    [
        ("authenticate", ["authenticate"], False),
        ("upload", ["authenticate", "upload"], False),
        ("publish", ["authenticate", "upload", "publish"], True),
        ("fetch_stats", ["authenticate", "upload", "publish", "fetch_stats"], True),
    ],
)
def test_publish_video_short_circuits_and_keeps_uploaded_media_id(
    fail_on: str,
    expected_calls: list[str],
    media_id_kept: bool,
) -> None:
    calls: list[str] = []
    client = RecordingClient("tiktok", calls, media_id="tt-7", fail_on=fail_on)
    video = build_video()

    with pytest.raises(PlatformError) as exc_info:
        _service_with(client).publish_video(build_workspace(), video, "tiktok")

    assert str(exc_info.value) == f"tiktok_{fail_on}_boom"
    assert calls == expected_calls
    assert (video.external_id("tiktok") == "tt-7") is media_id_kept
    if not media_id_kept:
        assert video.external_ids() == {}


def test_publish_video_propagates_client_error_without_wrapping() -> None:
    class _ClientError(PlatformError):
        pass

    class _FailingClient(RecordingClient):
        def upload(self, video):
            raise _ClientError("raw failure")

    client = _FailingClient("snapchat", [])

    with pytest.raises(_ClientError, match="raw failure"):
        _service_with(client).publish_video(build_workspace(), build_video(), "snapchat")


@pytest.mark.parametrize("platform", SUPPORTED_PLATFORMS)
def test_publish_video_writes_only_the_target_platform_id(platform: str) -> None:
    video = build_video({"youtube": "existing-yt"} if platform != "youtube" else {"tiktok": "existing-tt"})
    before = video.external_ids()
    client = RecordingClient(platform, [], media_id=f"{platform}-id")

    _service_with(client).publish_video(build_workspace(), video, platform)

    after = video.external_ids()
    assert after[platform] == f"{platform}-id"
    assert {key: value for key, value in after.items() if key != platform} == before


def test_publish_video_refuses_video_that_is_not_ready() -> None:
    requested: list[str] = []
    calls: list[str] = []
    service = _service_with(RecordingClient("youtube", calls), requested)

    with pytest.raises(VideoNotReadyError):
        service.publish_video(build_workspace(), build_video(status=VIDEO_STATUS_PROCESSING), "youtube")

    assert requested == []
    assert calls == []


def test_publish_video_propagates_factory_error() -> None:
    service = PublicationService()
    video = build_video()

    with pytest.raises(UnsupportedPlatformError):
        service.publish_video(build_workspace(), video, "myspace")

    assert video.external_ids() == {}


def test_sync_stats_only_authenticates_and_fetches() -> None:
    calls: list[str] = []
    client = RecordingClient("youtube", calls, stats=PlatformStats(views=12, likes=3))
    video = build_video()

    stats = _service_with(client).sync_stats(build_workspace(), video, "youtube")

    assert stats.views == 12
    assert calls == ["authenticate", "fetch_stats"]
    assert video.external_ids() == {}


def test_sync_stats_surfaces_unsupported_marker() -> None:
    client = RecordingClient("instagram", [], stats_supported=False)

    with pytest.raises(PlatformOperationNotSupported) as exc_info:
        _service_with(client).sync_stats(build_workspace(), build_video(), "instagram")

    assert exc_info.value.operation == "fetch_stats"
    assert exc_info.value.platform == "instagram"


def test_resume_publication_skips_upload_when_media_id_present() -> None:
    calls: list[str] = []
    client = RecordingClient("facebook", calls)
    video = build_video({"facebook": "fb-1"})

    _service_with(client).resume_publication(build_workspace(), video, "facebook")

    assert calls == ["authenticate", "publish", "fetch_stats"]
    assert video.external_id("facebook") == "fb-1"


def test_resume_publication_requires_existing_media_id() -> None:
    calls: list[str] = []
    client = RecordingClient("facebook", calls)

    with pytest.raises(PlatformError, match="facebook_media_id_missing"):
        _service_with(client).resume_publication(build_workspace(), build_video(), "facebook")

    assert calls == []


def test_step_callback_reports_upload_and_publish_as_they_succeed() -> None:
    calls: list[str] = []
    reported: list[tuple[str, str | None]] = []
    video = build_video()
    service = _service_with(RecordingClient("youtube", calls, media_id="yt-5", fail_on="fetch_stats"))

    with pytest.raises(PlatformError):
        service.publish_video(
            build_workspace(),
            video,
            "youtube",
            on_step=lambda step: reported.append((step, video.external_id("youtube"))),
        )

    assert reported == [("upload", "yt-5"), ("publish", "yt-5")]


def test_resume_publication_reports_only_publish() -> None:
    reported: list[str] = []
    service = _service_with(RecordingClient("youtube", []))

    service.resume_publication(build_workspace(), build_video({"youtube": "yt-5"}), "youtube", on_step=reported.append)

    assert reported == ["publish"]
