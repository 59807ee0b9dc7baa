from sqlalchemy import func

from extensions import db
from models import LGA, Bookmark, Follow, IncidentReport, ReportType, State, SubReport, User
from repositories import page_bounds


def get(report_id: str) -> IncidentReport | None:
    if not report_id:
        return None
    return db.session.get(IncidentReport, str(report_id))


def exists(report_id: str) -> bool:
    return get(report_id) is not None


def add(report: IncidentReport) -> IncidentReport:
    db.session.add(report)
    db.session.flush()
    return report


def delete(report: IncidentReport) -> None:
    db.session.delete(report)


def _paged(query, page, page_size: int) -> list[IncidentReport]:
    limit, offset = page_bounds(page, page_size)
    return query.limit(limit).offset(offset).all()


def list_recent(page, page_size: int) -> list[IncidentReport]:
    return _paged(IncidentReport.query.order_by(IncidentReport.created_at.desc()), page, page_size)


def list_by_state(state: str, page, page_size: int) -> list[IncidentReport]:
    query = IncidentReport.query.filter(IncidentReport.state_name == state).order_by(IncidentReport.time_of_incidence.desc())
    return _paged(query, page, page_size)


def list_by_state_between(state: str, start, end, page, page_size: int) -> list[IncidentReport]:
    query = (
        IncidentReport.query.filter(
            IncidentReport.state_name == state,
            IncidentReport.time_of_incidence.between(start, end),
        )
        .order_by(IncidentReport.time_of_incidence.desc())
    )
    return _paged(query, page, page_size)


def list_by_lga(lga: str, page, page_size: int) -> list[IncidentReport]:
    query = IncidentReport.query.filter(IncidentReport.lga_name == lga).order_by(IncidentReport.time_of_incidence.desc())
    return _paged(query, page, page_size)


def list_by_report_type(report_type: str, page, page_size: int) -> list[IncidentReport]:
    query = (
        IncidentReport.query.filter(IncidentReport.report_type_name == report_type)
        .order_by(IncidentReport.time_of_incidence.desc())
    )
    return _paged(query, page, page_size)


def list_by_user(user_id: str, page, page_size: int) -> list[IncidentReport]:
    query = IncidentReport.query.filter_by(user_id=user_id).order_by(IncidentReport.created_at.desc())
    return _paged(query, page, page_size)


def latest_for_user(user_id: str) -> IncidentReport | None:
    return IncidentReport.query.filter_by(user_id=user_id).order_by(IncidentReport.created_at.desc()).first()


def filter_reports(category: str = "", state: str = "", lga: str = "") -> tuple[list[IncidentReport], list[str]]:
    """Return reports matching the provided filters and the filter values applied."""
    query = IncidentReport.query
    applied: list[str] = []
    if category:
        query = query.filter(IncidentReport.category == category)
        applied.append(category)
    if state:
        query = query.filter(IncidentReport.state_name == state)
        applied.append(state)
    if lga:
        query = query.filter(IncidentReport.lga_name == lga)
        applied.append(lga)
    return query.order_by(IncidentReport.created_at.desc()).all(), applied


def count_by_lga(lga: str) -> int:
    return IncidentReport.query.filter(IncidentReport.lga_name == lga).count()


def count_by_state(state: str) -> int:
    return IncidentReport.query.filter(IncidentReport.state_name == state).count()


def count_overall() -> int:
    return IncidentReport.query.count()


def count_since(start) -> int:
    return IncidentReport.query.filter(IncidentReport.created_at >= start).count()


def counts_by_state() -> list[tuple[str, int]]:
    rows = (
        db.session.query(IncidentReport.state_name, func.count(IncidentReport.id))
        .filter(IncidentReport.state_name.isnot(None), IncidentReport.state_name != "")
        .group_by(IncidentReport.state_name)
        .order_by(func.count(IncidentReport.id).desc(), IncidentReport.state_name)
        .all()
    )
    return [(name, count) for name, count in rows]


def top_categories(limit: int = 10) -> list[tuple[str, int]]:
    rows = (
        db.session.query(IncidentReport.category, func.count(IncidentReport.id))
        .filter(IncidentReport.category.isnot(None), IncidentReport.category != "")
        .group_by(IncidentReport.category)
        .order_by(func.count(IncidentReport.id).desc(), IncidentReport.category)
        .limit(limit)
        .all()
    )
    return [(name, count) for name, count in rows]


def state_names() -> list[str]:
    rows = (
        db.session.query(IncidentReport.state_name)
        .filter(IncidentReport.state_name.isnot(None), IncidentReport.state_name != "")
        .distinct()
        .order_by(IncidentReport.state_name)
        .all()
    )
    return [row[0] for row in rows]


def lga_names_for_state(state: str) -> list[str]:
    rows = (
        db.session.query(IncidentReport.lga_name)
        .filter(
            func.lower(IncidentReport.state_name) == state.lower(),
            IncidentReport.lga_name.isnot(None),
            IncidentReport.lga_name != "",
        )
        .distinct()
        .order_by(IncidentReport.lga_name)
        .all()
    )
    return [row[0] for row in rows]


def add_classification(report: IncidentReport, category: str | None, rating: str | None, sub_report_type: str | None) -> ReportType:
    report_type = ReportType(
        user_id=report.user_id,
        report_id=report.id,
        category=category,
        state_name=report.state_name,
        lga_name=report.lga_name,
        incident_report_rating=rating,
    )
    if sub_report_type:
        report_type.sub_reports.append(SubReport(sub_report_type=sub_report_type))
    db.session.add(report_type)
    return report_type


def add_location(report: IncidentReport, state_name: str | None, lga_name: str | None) -> None:
    if state_name:
        db.session.add(State(name=state_name, report_id=report.id))
    if lga_name:
        db.session.add(LGA(name=lga_name, state_name=state_name, report_id=report.id))


def find_bookmark(user_id: str, report_id: str) -> Bookmark | None:
    return Bookmark.query.filter_by(user_id=user_id, report_id=report_id).first()


def add_bookmark(user_id: str, report_id: str) -> Bookmark:
    bookmark = Bookmark(user_id=user_id, report_id=report_id)
    db.session.add(bookmark)
    db.session.flush()
    return bookmark


def bookmarked_reports(user_id: str) -> list[IncidentReport]:
    return (
        IncidentReport.query.join(Bookmark, Bookmark.report_id == IncidentReport.id)
        .filter(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc())
        .all()
    )


def add_follow(user_id: str, report_id: str, follow_text: str, follow_media: str | None = None) -> Follow:
    follow = Follow(user_id=user_id, report_id=report_id, follow_text=follow_text, follow_media=follow_media)
    db.session.add(follow)
    db.session.flush()
    return follow


def followers(report_id: str) -> list[User]:
    return (
        User.query.join(Follow, Follow.user_id == User.id)
        .filter(Follow.report_id == report_id)
        .distinct()
        .all()
    )


def delete_engagement_for_user(user_id: str) -> None:
    Bookmark.query.filter_by(user_id=user_id).delete(synchronize_session=False)
    Follow.query.filter_by(user_id=user_id).delete(synchronize_session=False)
