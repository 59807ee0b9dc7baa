from extensions import db
from models import Media, MediaCount


def add_media(media: Media) -> Media:
    db.session.add(media)
    return media


def media_for_report(report_id: str) -> list[Media]:
    return Media.query.filter_by(incident_report_id=report_id).order_by(Media.created_at).all()


def get_media_count(report_id: str) -> MediaCount | None:
    return MediaCount.query.filter_by(incident_report_id=report_id).first()


def save_media_count(user_id: str, report_id: str, images: int, videos: int, audios: int) -> MediaCount:
    """Create or bump the per-report media counters."""
    counts = get_media_count(report_id)
    if counts is None:
        counts = MediaCount(user_id=user_id, incident_report_id=report_id, images=0, videos=0, audios=0)
    counts.images = (counts.images or 0) + images
    counts.videos = (counts.videos or 0) + videos
    counts.audios = (counts.audios or 0) + audios
    db.session.add(counts)
    return counts


def delete_for_user(user_id: str) -> None:
    Media.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    MediaCount.query.filter_by(user_id=user_id).delete(synchronize_session=False)
