import io
import os
import subprocess

import pytest
from PIL import Image

from conftest import png_bytes
from extensions import db
from models import IncidentReport, Media
from utils import media as media_utils
from utils.media import (
    MediaProcessingError,
    MediaTooLargeError,
    UnsupportedMediaError,
    classify,
    process_payload,
    sniff_mime,
)
from utils.storage import LocalStorage

MP4_HEAD = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 32


def test_sniffing_ignores_the_extension():
    assert classify("holiday.jpg", png_bytes()) == ("image", "image/png")
    assert sniff_mime(MP4_HEAD) == "video/mp4"
    assert sniff_mime(b"ID3\x03\x00rest") == "audio/mpeg"


def test_text_disguised_as_image_is_rejected():
    with pytest.raises(UnsupportedMediaError):
        classify("notes.png", b"just some plain text")


def test_unsupported_extension_creates_no_media(app, auth_headers, submit_report):
    response = submit_report(auth_headers, files=[("notes.txt", b"hello")])

    assert response.status_code == 415
    with app.app_context():
        assert Media.query.count() == 0
        assert IncidentReport.query.count() == 0


def test_image_variants_are_written(app, tmp_path):
    storage = LocalStorage(str(tmp_path / "store"), "/media")
    with app.app_context():
        result = process_payload("photo.png", png_bytes(size=(400, 300)), storage, stem="abc")

    assert result["file_type"] == "image"
    assert result["points"] == 10
    assert result["feed_url"] == "/media/media/feed/abc.jpg"
    with Image.open(storage.path_for("media/feed/abc.jpg")) as feed:
        assert feed.size == (1080, 1080)
    with Image.open(storage.path_for("media/thumbnail/abc.jpg")) as thumb:
        assert thumb.size == (161, 161)
    with Image.open(storage.path_for("media/fullsize/abc.jpg")) as full:
        assert full.size == (400, 300)


def test_oversized_image_is_rejected(app, tmp_path):
    app.config["MAX_IMAGE_UPLOAD_BYTES"] = 16
    storage = LocalStorage(str(tmp_path / "store"), "/media")
    with app.app_context(), pytest.raises(MediaTooLargeError):
        process_payload("photo.png", png_bytes(), storage)


def test_video_is_transcoded_with_ffmpeg(app, tmp_path, monkeypatch):
    calls = []

    def fake_run(args, check, capture_output, timeout):
        calls.append(args)
        with open(args[-1], "wb") as f:
            f.write(b"processed")
        return subprocess.CompletedProcess(args, 0)

    monkeypatch.setattr(media_utils.subprocess, "run", fake_run)
    storage = LocalStorage(str(tmp_path / "store"), "/media")
    with app.app_context():
        result = process_payload("clip.mp4", MP4_HEAD, storage, stem="vid")

    assert result["file_type"] == "video"
    assert result["feed_url"] == "/media/media/video/vid.mp4"
    assert result["thumbnail_url"] == "/media/media/thumbnail/vid.jpg"
    assert "-t" in calls[0] and "60" in calls[0]
    assert calls[1][-3:-1] == ["-frames:v", "1"]
    assert os.path.exists(storage.path_for("media/video/vid.mp4"))


def test_ffmpeg_failure_surfaces_processing_error(app, tmp_path, monkeypatch):
    def failing_run(args, check, capture_output, timeout):
        raise subprocess.CalledProcessError(1, args, stderr=b"bad input")

    monkeypatch.setattr(media_utils.subprocess, "run", failing_run)
    storage = LocalStorage(str(tmp_path / "store"), "/media")
    with app.app_context(), pytest.raises(MediaProcessingError):
        process_payload("clip.mp4", MP4_HEAD, storage)


def test_audio_is_stored_unchanged(app, tmp_path):
    payload = b"ID3\x03\x00" + b"\x00" * 64
    storage = LocalStorage(str(tmp_path / "store"), "/media")
    with app.app_context():
        result = process_payload("memo.mp3", payload, storage, stem="memo")

    assert result["file_type"] == "audio"
    with open(storage.path_for("media/audio/memo.mp3"), "rb") as f:
        assert f.read() == payload


def test_media_attaches_to_latest_report(app, client, auth_headers, submit_report):
    created = submit_report(auth_headers).get_json()["report"]

    response = client.post(
        "/api/v1/user/report/media",
        data={"mediaFiles": [(io.BytesIO(png_bytes()), "extra.png")]},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 201, response.get_json()
    body = response.get_json()
    assert body["report_id"] == created["id"]
    assert body["reward_point"] == created["reward_point"] + 10

    with app.app_context():
        report = db.session.get(IncidentReport, created["id"])
        assert report.media_count.images == 1

    served = client.get(body["media"][0]["feed_url"])
    assert served.status_code == 200


def test_rejected_upload_is_logged_and_raised(app, caplog):
    from werkzeug.datastructures import FileStorage

    from services import media_service

    upload = FileStorage(stream=io.BytesIO(b"MZ\x90\x00binary"), filename="setup.exe")
    app.logger.addHandler(caplog.handler)
    try:
        with app.app_context(), pytest.raises(UnsupportedMediaError):
            media_service.process_uploads([upload])
    finally:
        app.logger.removeHandler(caplog.handler)

    records = [r for r in caplog.records if r.getMessage() == "media_batch_failed"]
    assert records and records[0].upload_name == "setup.exe"
