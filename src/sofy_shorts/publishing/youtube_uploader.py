"""YouTube Data API v3 uploader for finished Shorts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload

from sofy_shorts.config.logging import get_logger
from sofy_shorts.exceptions import ConfigurationError, StepFailure
from sofy_shorts.generators.base import RetryPolicy, ServiceAdapter
from sofy_shorts.models.video_config import VideoConfig

logger = get_logger(__name__)

SCOPES = ["https://www.googleapis.com/auth/youtube.upload"]
WATCH_URL = "https://youtube.com/watch?v={video_id}"
DEFAULT_CATEGORY_ID = 22  # People & Blogs
DEFAULT_PRIVACY_STATUS = "public"


@dataclass(frozen=True)
class UploadRequest:
    video_path: Path
    title: str
    description: str
    tags: list[str] = field(default_factory=list)
    category_id: int = DEFAULT_CATEGORY_ID
    privacy_status: str = DEFAULT_PRIVACY_STATUS

    @classmethod
    def from_config(cls, video_path: Path, config: VideoConfig) -> "UploadRequest":
        """Build upload metadata, deriving anything the config leaves empty."""
        output = config.output
        niche = config.niche.title()
        title = output.title or f"{config.prompt.topic} - {config.theme} | {niche} Video"
        description = output.description or (
            f"A {config.niche} video about {config.theme} with a focus on {config.prompt.topic}."
        )
        tags = output.tags or [config.niche, config.theme, config.prompt.topic]
        if "#Shorts" not in title and "#Shorts" not in description:
            description = f"{description}\n\n#Shorts"
        return cls(
            video_path=video_path,
            title=title[:100],
            description=description,
            tags=list(tags),
            category_id=output.category_id or DEFAULT_CATEGORY_ID,
            privacy_status=output.privacy_status or DEFAULT_PRIVACY_STATUS,
        )


def default_token_path(client_secrets: Path) -> Path:
    return client_secrets.with_name("youtube_token.json")


def check_upload_credentials(client_secrets: Path | None, token_file: Path | None) -> Path:
    """Make sure an upload can authenticate without an interactive OAuth flow.

    Returns:
        The token file to use.

    Raises:
        ConfigurationError: If the client secrets or the stored token are missing.
    """
    if client_secrets is None:
        raise ConfigurationError(
            "YOUTUBE_CLIENT_SECRETS is not set",
            details="Set it to an OAuth client JSON file or disable output.upload",
        )
    if not client_secrets.exists():
        raise ConfigurationError(
            f"YouTube client secrets not found: {client_secrets}",
            details="Set YOUTUBE_CLIENT_SECRETS to an OAuth client JSON file",
        )
    token = token_file or default_token_path(client_secrets)
    if not token.exists():
        raise ConfigurationError(
            f"YouTube token not found: {token}",
            details="Run `sofy youtube-auth` once to authorize uploads",
        )
    return token


def get_youtube_service(client_secrets: Path, token_path: Path):
    """Return an authorized YouTube client, running the OAuth flow if needed."""
    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            creds.refresh(Request())
        else:
            if not client_secrets.exists():
                raise ConfigurationError(
                    f"YouTube client secrets not found: {client_secrets}",
                    details="Set YOUTUBE_CLIENT_SECRETS to an OAuth client JSON file",
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(client_secrets), SCOPES)
            creds = flow.run_local_server(port=0)
        token_path.parent.mkdir(parents=True, exist_ok=True)
        token_path.write_text(creds.to_json(), encoding="utf-8")
    return build("youtube", "v3", credentials=creds)


class YouTubeUploader(ServiceAdapter[UploadRequest, str | None]):
    """Uploads a video and returns its watch URL.

    Authenticates with OAuth rather than the API key pool. The fallback
    result is ``None`` (no URL); the job still completes.
    """

    name = "youtube-upload"

    def __init__(
        self,
        client_secrets: Path | None,
        token_file: Path | None,
        policy: RetryPolicy | None = None,
        service_factory: Callable[[], Any] | None = None,
    ):
        super().__init__(None, policy)
        self.client_secrets = client_secrets
        self.token_file = token_file
        self._service_factory = service_factory
        self._service = None

    def _youtube(self):
        if self._service is None:
            if self._service_factory is not None:
                self._service = self._service_factory()
            else:
                if self.client_secrets is None:
                    raise ConfigurationError("YOUTUBE_CLIENT_SECRETS is not set")
                token = self.token_file or default_token_path(self.client_secrets)
                self._service = get_youtube_service(self.client_secrets, token)
        return self._service

    def _upload_blocking(self, request: UploadRequest) -> dict:
        body = {
            "snippet": {
                "title": request.title,
                "description": request.description,
                "tags": request.tags,
                "categoryId": str(request.category_id),
            },
            "status": {
                "privacyStatus": request.privacy_status,
                "selfDeclaredMadeForKids": False,
            },
        }
        media = MediaFileUpload(str(request.video_path), chunksize=-1, resumable=True)
        insert = self._youtube().videos().insert(part="snippet,status", body=body, media_body=media)
        response = None
        while response is None:
            status, response = insert.next_chunk()
            if status:
                logger.debug("Upload progress: %d%%", int(status.progress() * 100))
        return response

    async def _invoke(self, request: UploadRequest, api_key: str | None) -> str | None:
        if not request.video_path.exists():
            raise StepFailure(f"Video to upload does not exist: {request.video_path}")
        logger.info("Uploading %s to YouTube as %r", request.video_path, request.title)
        response = await asyncio.to_thread(self._upload_blocking, request)
        video_id = response.get("id")
        if not video_id:
            raise StepFailure("YouTube response did not include a video id")
        url = WATCH_URL.format(video_id=video_id)
        logger.info("Uploaded video: %s", url)
        return url

    def _fallback(self, request: UploadRequest, error: BaseException) -> str | None:
        return None
