"""Batch media processing and persistence of Media / MediaCount rows."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from extensions import db
from models import IncidentReport, Media
from repositories import media as media_repo
from repositories import reports as report_repo
from repositories import rewards as reward_repo
from services import NotFoundError, ServiceError
from services.reward_service import ANOTHER_ENTRY
from utils.media import process_payload, read_upload
from utils.storage import get_storage


def process_uploads(uploads: list[FileStorage]) -> list[dict]:
    """Classify, transform and store every upload in order.

    The first failing file stops the batch and its error propagates. Variants
    already stored for earlier files stay in storage.
    """
    storage = get_storage()
    processed: list[dict] = []
    for upload in uploads:
        if upload is None or not (upload.filename or "").strip():
            continue
        try:
            filename, payload = read_upload(upload)
            processed.append(process_payload(filename, payload, storage))
        except ServiceError as exc:
            current_app.logger.warning(
                "media_batch_failed",
                extra={"upload_name": upload.filename, "processed": len(processed), "reason": exc.message},
            )
            raise
    return processed


def attach_media(report: IncidentReport, user_id: str, processed: list[dict]) -> list[Media]:
    """Stage Media rows, bump counters and append URLs on the report."""
    rows: list[Media] = []
    counts = {"image": 0, "video": 0, "audio": 0}
    for item in processed:
        media = Media(
            user_id=user_id,
            incident_report_id=report.id,
            file_type=item["file_type"],
            mime_type=item["mime_type"],
            file_size=item["file_size"],
            filename=item["filename"],
            width=item.get("width"),
            height=item.get("height"),
            feed_url=item.get("feed_url"),
            thumbnail_url=item.get("thumbnail_url"),
            full_size_url=item.get("full_size_url"),
            points=item.get("points", 0),
        )
        media_repo.add_media(media)
        rows.append(media)
        counts[item["file_type"]] += 1

    media_repo.save_media_count(user_id, report.id, counts["image"], counts["video"], counts["audio"])
    report.feed_urls = _append_urls(report.feed_urls, [m.feed_url for m in rows])
    report.thumbnail_urls = _append_urls(report.thumbnail_urls, [m.thumbnail_url for m in rows])
    report.full_size_urls = _append_urls(report.full_size_urls, [m.full_size_url for m in rows])
    return rows


def _append_urls(existing: str | None, urls: list[str | None]) -> str:
    values = [u for u in (existing or "").split(",") if u]
    values.extend(u for u in urls if u)
    return ",".join(values)


def add_media_to_latest_report(user, uploads: list[FileStorage]) -> tuple[IncidentReport, list[Media]]:
    report = report_repo.latest_for_user(user.id)
    if report is None:
        raise NotFoundError("no report found for this user")
    processed = process_uploads(uploads)
    if not processed:
        raise ServiceError("no media files provided", 400)

    points = sum(item.get("points", 0) for item in processed)
    try:
        rows = attach_media(report, user.id, processed)
        report.reward_point = (report.reward_point or 0) + points
        reward_repo.save_reward(user.id, report.id, ANOTHER_ENTRY, points)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("media_attach_failed", extra={"user_id": user.id, "report_id": report.id})
        raise ServiceError("unable to save media", 500) from exc

    current_app.logger.info(
        "media_attached",
        extra={"user_id": user.id, "report_id": report.id, "count": len(rows), "points": points},
    )
    return report, rows


def media_for_report(report_id: str) -> list[Media]:
    return media_repo.media_for_report(report_id)
