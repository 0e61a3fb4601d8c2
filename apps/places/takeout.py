"""
Google Takeout "저장한 장소" CSV → TakeoutRow.

CSV 파싱은 여기서 끝내고, 파이프라인에는 검증된 TakeoutRow 만 넘긴다.
컬럼: Title, Note, URL, Tags, Comment (헤더 대소문자 무시, BOM 허용)
"""
import csv
import io
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, TextIO

from .exceptions import StreamError

COLUMNS = ("title", "note", "url", "tags", "comment")


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class TakeoutRow:
    line: int  # 헤더 제외 1부터
    title: Optional[str] = None
    note: Optional[str] = None
    url: Optional[str] = None
    tags: Optional[str] = None
    comment: Optional[str] = None

    @classmethod
    def from_mapping(cls, line: int, raw: dict) -> "TakeoutRow":
        fields = {}
        for key, value in raw.items():
            if key is None:  # 헤더보다 많은 칸 → 무시
                continue
            name = key.strip().lstrip("\ufeff").lower()
            if name in COLUMNS:
                fields[name] = _clean(value)
        return cls(line=line, **fields)


def read_takeout_rows(stream: TextIO) -> Iterator[TakeoutRow]:
    """
    텍스트 스트림을 한 행씩 읽는 지연 제너레이터.
    디코딩/CSV 오류는 StreamError 로 바꿔서 던진다 (그 이후 행 경계는 믿을 수 없음).
    """
    try:
        reader = csv.DictReader(stream)
        for i, raw in enumerate(reader, start=1):
            yield TakeoutRow.from_mapping(i, raw)
    except UnicodeDecodeError as e:
        raise StreamError(f"Failed to decode export: {e}") from e
    except csv.Error as e:
        raise StreamError(f"Failed to parse CSV file: {e}") from e


@contextmanager
def open_upload_rows(upload, encoding: str = "utf-8-sig"):
    """
    Django UploadedFile(메모리/임시파일) 을 행 이터레이터로 연다.
    다 읽었든 중간에 실패했든 블록을 벗어나면 업로드 파일을 닫아 임시파일을 정리한다.
    """
    text = None
    try:
        upload.seek(0)
        text = io.TextIOWrapper(upload.file, encoding=encoding, newline="")
        yield read_takeout_rows(text)
    finally:
        if text is not None:
            text.detach()
        upload.close()
