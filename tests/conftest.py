from __future__ import annotations

import pytest
import yt_dlp

from src.services.platforms import youtube, ytdlp


@pytest.fixture(autouse=True)
def no_blocking_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """yt-dlp and youtube-transcript-api never reach the network in tests."""

    def _blocked_extract(url: str) -> dict:
        raise yt_dlp.utils.DownloadError(f"network disabled in tests: {url}")

    monkeypatch.setattr(ytdlp, "_extract_info_sync", _blocked_extract)
    monkeypatch.setattr(youtube, "_fetch_transcript_sync", lambda video_id: None)
