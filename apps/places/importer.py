"""
Google Takeout 저장한 장소 가져오기.

행마다 독립적으로 커밋한다 (전체를 하나의 트랜잭션으로 묶지 않음).
한 행이 실패해도 오류만 기록하고 다음 행으로 넘어가며,
이미 저장된 장소는 태그 연결이 실패해도 되돌리지 않는다.

    Received ─┬─> Skipped     (지도 장소 URL 아님)
              ├─> Failed      (장소 URL 인데 제목 없음 / 저장 실패)
              └─> Parsing → PersistingPlace → ResolvingTags → Committed
"""
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from django.db import DEFAULT_DB_ALIAS, DatabaseError, InterfaceError, connections, transaction

from apps.tags.services import resolve_tag
from .exceptions import InvalidInput, StorageError, StoreUnavailable
from .models import Place
from .services import link_tag
from .takeout import TakeoutRow, open_upload_rows

logger = logging.getLogger(__name__)

PLACE_URL_MARKER = "google.com/maps/place/"
PLACE_ID_RE = re.compile(r"1s0x[0-9a-f]+:0x[0-9a-f]+")
NOTES_SEPARATOR = " | "


def extract_place_id(url: Optional[str]) -> Optional[str]:
    """지도 URL 에 박힌 장소 ID (1s0x...:0x...). 없으면 None (오류 아님)"""
    match = PLACE_ID_RE.search(url or "")
    return match.group(0) if match else None


def split_tag_names(raw: Optional[str]) -> List[str]:
    # 쉼표 분리 → 공백 제거 → 빈 값/중복 제거 (처음 순서 유지)
    names = [t.strip() for t in (raw or "").split(",")]
    return list(dict.fromkeys(n for n in names if n))


def compose_notes(note: Optional[str], comment: Optional[str]) -> Optional[str]:
    parts = [p for p in (note, comment) if p]
    return NOTES_SEPARATOR.join(parts) if parts else None


def is_place_row(row: TakeoutRow) -> bool:
    return bool(row.url) and PLACE_URL_MARKER in row.url


class RowOutcome(enum.Enum):
    COMMITTED = "committed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RowError:
    row: str  # 제목, 제목이 없으면 "row N"
    reason: str

    def as_dict(self):
        return {"row": self.row, "reason": self.reason}


@dataclass
class ImportReport:
    imported_count: int = 0
    skipped_count: int = 0
    errors: List[RowError] = field(default_factory=list)
    cancelled: bool = False

    def add_error(self, row: str, reason: str) -> None:
        self.errors.append(RowError(row=row, reason=reason))

    def as_dict(self):
        return {
            "imported": self.imported_count,
            "skipped": self.skipped_count,
            "errors": [e.as_dict() for e in self.errors],
            "cancelled": self.cancelled,
        }


class TakeoutImporter:
    """
    Takeout 행 스트림 → Place/Tag/PlaceTag.

    using       : 사용할 DB alias (저장소는 호출하는 서비스가 소유)
    resolver    : (user, name, using=...) -> tag id
    should_stop : 매 행 직전에 호출, True 면 남은 행은 읽지 않고 멈춤 (커밋된 행은 유지)
    dry_run     : 분류만 하고 DB 에는 쓰지 않음
    """

    def __init__(
        self,
        using: str = DEFAULT_DB_ALIAS,
        resolver: Callable = resolve_tag,
        should_stop: Optional[Callable[[], bool]] = None,
        dry_run: bool = False,
    ):
        self.using = using
        self.resolver = resolver
        self.should_stop = should_stop
        self.dry_run = dry_run

    def run(self, user, rows: Iterable[TakeoutRow], on_row: Optional[Callable] = None) -> ImportReport:
        """
        행을 들어온 순서대로 하나씩 처리한다.
        on_row(row, outcome, report) 는 행마다 호출 (진행률 표시용).
        StreamError(파일 손상)는 그대로 올라가고, DB 에 닿을 수 없으면 StoreUnavailable.
        """
        report = ImportReport()
        for row in rows:
            if self.should_stop is not None and self.should_stop():
                report.cancelled = True
                logger.info("import cancelled for user %s after %d rows", user.pk, row.line - 1)
                break
            outcome = self.import_row(user, row, report)
            if on_row is not None:
                on_row(row, outcome, report)

        logger.info(
            "takeout import for user %s: imported=%d skipped=%d failed=%d",
            user.pk, report.imported_count, report.skipped_count, len(report.errors),
        )
        return report

    def import_row(self, user, row: TakeoutRow, report: ImportReport) -> RowOutcome:
        if not is_place_row(row):
            report.skipped_count += 1
            logger.debug("row %d skipped: not a saved place", row.line)
            return RowOutcome.SKIPPED

        if not row.title:
            report.add_error(f"row {row.line}", "Missing title")
            logger.warning("row %d failed: missing title", row.line)
            return RowOutcome.FAILED

        tag_names = split_tag_names(row.tags)
        if self.dry_run:
            report.imported_count += 1
            return RowOutcome.COMMITTED

        try:
            place = self._persist_place(user, row)
        except (DatabaseError, InterfaceError) as e:
            self._abort_if_unreachable(e, report)
            report.add_error(row.title, f"Failed to import {row.title}: {e}")
            logger.warning("row %d (%s) failed: %s", row.line, row.title, e)
            return RowOutcome.FAILED
        report.imported_count += 1

        failures = self._link_tags(user, place, tag_names, report)
        if failures:
            report.add_error(row.title, f"Failed to tag {row.title}: " + "; ".join(failures))
            logger.warning("row %d (%s) tags failed: %s", row.line, row.title, failures)
            return RowOutcome.FAILED
        return RowOutcome.COMMITTED

    def _persist_place(self, user, row: TakeoutRow) -> Place:
        # 이 형식으로는 주소/좌표를 알 수 없으므로 빈 주소, 0/0 으로 저장
        with transaction.atomic(using=self.using):
            return Place.objects.using(self.using).create(
                user=user,
                name=row.title,
                address="",
                latitude=0.0,
                longitude=0.0,
                external_place_id=extract_place_id(row.url),
                url=row.url,
                notes=compose_notes(row.note, row.comment),
            )

    def _link_tags(self, user, place: Place, tag_names: List[str], report: ImportReport) -> List[str]:
        failures = []
        for name in tag_names:
            try:
                tag_id = self.resolver(user, name, using=self.using)
                link_tag(place.pk, tag_id, using=self.using)
            except InvalidInput as e:
                failures.append(f"'{name}': {e}")
            except StorageError as e:
                self._abort_if_unreachable(e.__cause__ or e, report)
                failures.append(f"'{name}': {e}")
            except InterfaceError as e:
                self._abort_if_unreachable(e, report)
        return failures

    def _abort_if_unreachable(self, exc: Exception, report: ImportReport) -> None:
        if isinstance(exc, InterfaceError) or not self._store_reachable():
            logger.error("store unreachable, aborting import: %s", exc)
            raise StoreUnavailable(f"Record store unavailable: {exc}", report=report) from exc

    def _store_reachable(self) -> bool:
        conn = connections[self.using]
        try:
            conn.ensure_connection()
            return conn.is_usable()
        except (DatabaseError, InterfaceError):
            return False


def import_takeout_upload(user, upload, importer: Optional[TakeoutImporter] = None) -> ImportReport:
    """업로드 파일 하나를 가져온다. 성공/실패와 무관하게 업로드 임시파일은 닫힌다."""
    importer = importer or TakeoutImporter()
    with open_upload_rows(upload) as rows:
        return importer.run(user, rows)
