"""Upload classification and per-category media processing.

Files are classified by their leading bytes, never by the client-supplied name
alone. Each category has a processor that derives the stored variants:

* image: 1080x1080 feed crop, 161x161 thumbnail, and the untouched full-size
  frame, all re-encoded as JPEG;
* video: an ffmpeg transcode capped at 60 seconds plus a single still frame;
* audio: the original bytes.
"""
import io
import os
import subprocess
import tempfile
import uuid

from flask import current_app
from PIL import Image, ImageOps, UnidentifiedImageError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from services import ServiceError
from utils.storage import StorageError

SUPPORTED_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".mp3",
    ".wav",
    ".ogg",
    ".flac",
    ".mp4",
    ".mov",
    ".avi",
}

MIME_CATEGORIES = {
    "image/jpeg": "image",
    "image/png": "image",
    "image/gif": "image",
    "video/mp4": "video",
    "video/x-msvideo": "video",
    "video/quicktime": "video",
    "audio/mpeg": "audio",
    "audio/wav": "audio",
    "audio/ogg": "audio",
    "audio/flac": "audio",
}

POINTS_PER_MEDIA = 10
FEED_SIZE = (1080, 1080)
THUMBNAIL_SIZE = (161, 161)
VIDEO_MAX_SECONDS = 60


class UnsupportedMediaError(ServiceError):
    """Raised when an upload is not a recognised image, video, or audio file."""

    status_code = 415


class MediaTooLargeError(ServiceError):
    """Raised when an upload exceeds its category size limit."""

    status_code = 413


class MediaProcessingError(ServiceError):
    """Raised when decoding, transcoding, or storing an upload fails."""

    status_code = 500


def sniff_mime(head: bytes) -> str | None:
    if head.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if head.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if head[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if len(head) >= 12 and head[4:8] == b"ftyp":
        return "video/quicktime" if head[8:12] == b"qt  " else "video/mp4"
    if head.startswith(b"RIFF") and head[8:12] == b"AVI ":
        return "video/x-msvideo"
    if head.startswith(b"RIFF") and head[8:12] == b"WAVE":
        return "audio/wav"
    if head.startswith(b"OggS"):
        return "audio/ogg"
    if head.startswith(b"fLaC"):
        return "audio/flac"
    if head.startswith(b"ID3") or (len(head) >= 2 and head[0] == 0xFF and (head[1] & 0xE0) == 0xE0):
        return "audio/mpeg"
    return None


def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def is_supported_filename(filename: str) -> bool:
    return file_extension(filename) in SUPPORTED_EXTENSIONS


def read_upload(upload: FileStorage) -> tuple[str, bytes]:
    filename = secure_filename(upload.filename or "")
    if not filename or not is_supported_filename(filename):
        raise UnsupportedMediaError(f"Unsupported file type: {upload.filename or 'unnamed'}")
    upload.stream.seek(0)
    payload = upload.read()
    if not payload:
        raise UnsupportedMediaError(f"Empty file: {filename}")
    return filename, payload


def classify(filename: str, payload: bytes) -> tuple[str, str]:
    """Return ``(category, mime_type)`` for a payload or raise UnsupportedMediaError."""
    if not is_supported_filename(filename):
        raise UnsupportedMediaError(f"Unsupported file type: {filename}")
    mime_type = sniff_mime(payload[:64])
    category = MIME_CATEGORIES.get(mime_type or "")
    if not category:
        raise UnsupportedMediaError(f"Unrecognised media content: {filename}")
    return category, mime_type


def _encode_jpeg(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=90)
    return buffer.getvalue()


class MediaProcessor:
    category = ""
    limit_config_key = ""

    def max_bytes(self) -> int:
        return int(current_app.config.get(self.limit_config_key, 0) or 0)

    def check_size(self, filename: str, payload: bytes) -> None:
        limit = self.max_bytes()
        if limit and len(payload) > limit:
            raise MediaTooLargeError(f"{filename} exceeds the {limit // (1024 * 1024)}MB {self.category} limit")

    def process(self, filename: str, payload: bytes, mime_type: str, stem: str, storage) -> dict:
        raise NotImplementedError


class ImageProcessor(MediaProcessor):
    category = "image"
    limit_config_key = "MAX_IMAGE_UPLOAD_BYTES"

    def process(self, filename, payload, mime_type, stem, storage):
        try:
            with Image.open(io.BytesIO(payload)) as img:
                img.load()
                frame = ImageOps.exif_transpose(img).convert("RGB")
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise MediaProcessingError(f"Unable to decode image {filename}") from exc

        feed = ImageOps.fit(frame, FEED_SIZE, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))
        thumbnail = frame.resize(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)

        try:
            feed_url = storage.put(f"media/feed/{stem}.jpg", _encode_jpeg(feed), "image/jpeg")
            thumbnail_url = storage.put(f"media/thumbnail/{stem}.jpg", _encode_jpeg(thumbnail), "image/jpeg")
            full_size_url = storage.put(f"media/fullsize/{stem}.jpg", _encode_jpeg(frame), "image/jpeg")
        except StorageError as exc:
            raise MediaProcessingError(str(exc)) from exc

        return {
            "file_type": self.category,
            "mime_type": mime_type,
            "filename": filename,
            "file_size": len(payload),
            "width": frame.width,
            "height": frame.height,
            "feed_url": feed_url,
            "thumbnail_url": thumbnail_url,
            "full_size_url": full_size_url,
        }


class VideoProcessor(MediaProcessor):
    category = "video"
    limit_config_key = "MAX_VIDEO_UPLOAD_BYTES"

    def _run(self, args: list[str]) -> None:
        binary = current_app.config.get("FFMPEG_BINARY", "ffmpeg")
        try:
            subprocess.run([binary, "-y", *args], check=True, capture_output=True, timeout=300)
        except FileNotFoundError as exc:
            raise MediaProcessingError("ffmpeg is not installed") from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or b"").decode("utf-8", errors="ignore")[-500:]
            raise MediaProcessingError(f"ffmpeg failed: {stderr}") from exc
        except subprocess.TimeoutExpired as exc:
            raise MediaProcessingError("ffmpeg timed out") from exc

    def process(self, filename, payload, mime_type, stem, storage):
        with tempfile.TemporaryDirectory(prefix="citizenx-video-") as workdir:
            source = os.path.join(workdir, f"source{file_extension(filename) or '.mp4'}")
            output = os.path.join(workdir, f"{stem}.mp4")
            still = os.path.join(workdir, f"{stem}.jpg")
            with open(source, "wb") as f:
                f.write(payload)

            self._run([
                "-i", source,
                "-vf", "scale=1080:-2",
                "-t", str(VIDEO_MAX_SECONDS),
                "-c:a", "copy",
                "-preset", "fast",
                "-crf", "23",
                output,
            ])
            self._run(["-i", source, "-vf", "thumbnail", "-frames:v", "1", still])

            try:
                with open(output, "rb") as f:
                    video_url = storage.put(f"media/video/{stem}.mp4", f.read(), "video/mp4")
                with open(still, "rb") as f:
                    thumbnail_url = storage.put(f"media/thumbnail/{stem}.jpg", f.read(), "image/jpeg")
            except (OSError, StorageError) as exc:
                raise MediaProcessingError(f"Unable to store video {filename}: {exc}") from exc

        return {
            "file_type": self.category,
            "mime_type": mime_type,
            "filename": filename,
            "file_size": len(payload),
            "width": None,
            "height": None,
            "feed_url": video_url,
            "thumbnail_url": thumbnail_url,
            "full_size_url": video_url,
        }


class AudioProcessor(MediaProcessor):
    category = "audio"
    limit_config_key = "MAX_AUDIO_UPLOAD_BYTES"

    def process(self, filename, payload, mime_type, stem, storage):
        ext = file_extension(filename) or ".bin"
        try:
            url = storage.put(f"media/audio/{stem}{ext}", payload, mime_type)
        except StorageError as exc:
            raise MediaProcessingError(str(exc)) from exc
        return {
            "file_type": self.category,
            "mime_type": mime_type,
            "filename": filename,
            "file_size": len(payload),
            "width": None,
            "height": None,
            "feed_url": url,
            "thumbnail_url": None,
            "full_size_url": url,
        }


PROCESSORS: dict[str, MediaProcessor] = {
    "image": ImageProcessor(),
    "video": VideoProcessor(),
    "audio": AudioProcessor(),
}


def process_payload(filename: str, payload: bytes, storage, stem: str | None = None) -> dict:
    """Classify one upload, enforce its size limit, and store its variants."""
    category, mime_type = classify(filename, payload)
    processor = PROCESSORS[category]
    processor.check_size(filename, payload)
    result = processor.process(filename, payload, mime_type, stem or uuid.uuid4().hex, storage)
    result["points"] = POINTS_PER_MEDIA
    return result
