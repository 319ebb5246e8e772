"""Publishing targets for finished videos."""

from sofy_shorts.publishing.youtube_uploader import (
    UploadRequest,
    YouTubeUploader,
    check_upload_credentials,
    get_youtube_service,
)

__all__ = [
    "UploadRequest",
    "YouTubeUploader",
    "check_upload_credentials",
    "get_youtube_service",
]
