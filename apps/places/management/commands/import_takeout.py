import csv
import os
import sys
import time
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from apps.places.exceptions import StorageError, StoreUnavailable, StreamError
from apps.places.importer import RowOutcome, TakeoutImporter
from apps.places.takeout import read_takeout_rows


class Command(BaseCommand):
    help = "Google Takeout 저장한 장소 CSV(Saved Places)를 사용자 장소/태그로 가져옵니다 (진행률/ETA 표시)."

    def add_arguments(self, parser):
        parser.add_argument("--csv", required=True, help="Takeout CSV 경로 (예: 'Saved Places/Favorite places.csv')")
        parser.add_argument("--user", required=True, help="가져올 대상 사용자 username")
        parser.add_argument("--database", default="default", help="사용할 DB alias")
        parser.add_argument("--log-interval", type=int, default=100, help="몇 건마다 진행 로그를 출력할지")
        parser.add_argument("--dry-run", action="store_true", help="DB에 쓰지 않고 행 분류만 확인")

    # === 내부 유틸 ===
    def _fmt_hms(self, seconds: float) -> str:
        return str(timedelta(seconds=int(max(0, seconds))))

    def _print_progress(self, i: int, total: int, start_ts: float, report, final: bool = False):
        pct = (i / total) if total > 0 else 0.0
        elapsed = time.time() - start_ts
        rate = i / elapsed if elapsed > 0 and i > 0 else 0
        eta = (total - i) / rate if rate > 0 else 0
        line = (
            f"{pct*100:6.2f}%  {i}/{total}  "
            f"elapsed={self._fmt_hms(elapsed)}  eta={self._fmt_hms(eta)}  "
            f"ok={report.imported_count} skipped={report.skipped_count} failed={len(report.errors)}"
        )
        # 진행 중엔 같은 줄 덮어쓰기(\r), 종료 시 개행
        self.stdout.write(line, ending="\n" if final else "\r")
        self.stdout.flush()

    def _count_rows(self, csv_path: str) -> int:
        try:
            with open(csv_path, newline="", encoding="utf-8-sig") as f:
                return sum(1 for _ in csv.DictReader(f))
        except (UnicodeDecodeError, csv.Error) as e:
            raise CommandError(f"CSV를 읽을 수 없습니다: {e}")

    def handle(self, *args, **opts):
        csv_path = opts["csv"]
        log_interval = max(1, opts["log_interval"])
        dry_run = opts["dry_run"]

        if not os.path.exists(csv_path):
            raise CommandError(f"CSV not found: {csv_path}")

        User = get_user_model()
        try:
            user = User.objects.db_manager(opts["database"]).get(**{User.USERNAME_FIELD: opts["user"]})
        except User.DoesNotExist:
            raise CommandError(f"사용자를 찾을 수 없습니다: {opts['user']}")

        self.stdout.write(self.style.MIGRATE_HEADING("Count CSV rows"))
        total_rows = self._count_rows(csv_path)
        if total_rows == 0:
            raise CommandError("CSV에 데이터가 없습니다.")
        self.stdout.write(f"- total rows: {total_rows}")

        self.stdout.write(self.style.MIGRATE_HEADING("Import saved places" + (" (dry-run)" if dry_run else "")))
        importer = TakeoutImporter(using=opts["database"], dry_run=dry_run)
        start_ts = time.time()
        state = {"report": None, "line": 0, "last_tick": 0.0}

        def on_row(row, outcome, report):
            state["report"] = report
            state["line"] = row.line
            if outcome is RowOutcome.FAILED:
                err = report.errors[-1]
                self.stderr.write(self.style.WARNING(f"[row {row.line}] {err.reason}"))
            now = time.time()
            if row.line % log_interval == 0 or now - state["last_tick"] >= 1.0 or row.line == total_rows:
                self._print_progress(row.line, total_rows, start_ts, report)
                state["last_tick"] = now

        try:
            with open(csv_path, newline="", encoding="utf-8-sig") as f:
                report = importer.run(user, read_takeout_rows(f), on_row=on_row)
        except StreamError as e:
            raise CommandError(f"CSV 파일이 손상되어 가져오기를 중단했습니다: {e}")
        except StoreUnavailable as e:
            if e.report is not None:
                self._print_summary(e.report)
            raise CommandError(f"DB에 연결할 수 없어 가져오기를 중단했습니다: {e}")
        except StorageError as e:
            raise CommandError(str(e))
        except KeyboardInterrupt:
            # 줄 깨끗이 정리, 이미 커밋된 행은 그대로 남는다
            sys.stdout.write("\n")
            sys.stdout.flush()
            self.stderr.write(self.style.WARNING("사용자에 의해 중단됨(KeyboardInterrupt). 진행 상황을 요약합니다."))
            report = state["report"]
            if report is None:
                return
            report.cancelled = True

        self._print_progress(state["line"], total_rows, start_ts, report, final=True)
        self._print_summary(report)

    def _print_summary(self, report):
        self.stdout.write(self.style.SUCCESS(
            f"완료 ✅ imported={report.imported_count}, skipped={report.skipped_count}, failed={len(report.errors)}"
            + (" (중단됨)" if report.cancelled else "")
        ))
        for err in report.errors:
            self.stdout.write(f"  - {err.row}: {err.reason}")
