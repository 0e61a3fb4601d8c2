import logging
import uuid
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Mapping, Optional, Union

from django.db import DEFAULT_DB_ALIAS, DatabaseError
from django.db.models import Exists, OuterRef, Q
from django.db.models.functions import Lower
from django.db.models.lookups import Contains

from apps.tags.models import Tag
from .exceptions import InvalidInput, StorageError
from .models import Place, PlaceTag

logger = logging.getLogger(__name__)

# collection_id 로 넘기면 "폴더 없는 장소"만
UNASSIGNED = "unassigned"

# 텍스트 검색 대상 컬럼
TEXT_FIELDS = ("name", "address", "notes")


def _unicode_lower(value):
    return value.lower() if value is not None else None


class UnicodeLower(Lower):
    """SQLite 내장 LOWER/LIKE 는 ASCII 만 접으므로 파이썬 str.lower 로 대신"""

    def as_sqlite(self, compiler, connection, **extra_context):
        return self.as_sql(compiler, connection, function="UNICODE_LOWER", **extra_context)


def register_sqlite_functions(sender, connection, **kwargs):
    """connection_created 수신기 (PlacesConfig.ready 에서 연결)"""
    if connection.vendor == "sqlite":
        connection.connection.create_function("UNICODE_LOWER", 1, _unicode_lower, deterministic=True)


def _as_uuid(value, label: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (ValueError, TypeError, AttributeError):
        raise InvalidInput(f"Invalid {label} id: {value!r}") from None


def _split_ids(raw) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    ids = []
    for item in raw:
        ids += [part.strip() for part in str(item).split(",")]
    return [i for i in ids if i]


@dataclass(frozen=True)
class SearchFilters:
    """
    text          : name/address/notes 부분 일치 (대소문자 무시). 비어 있으면 조건 없음
    tag_ids       : 하나라도 달려 있으면 통과 (OR). 비어 있으면 조건 없음
    collection_id : 해당 폴더만. UNASSIGNED 면 폴더 없는 장소만
    세 조건은 AND 로 묶인다.
    """
    text: Optional[str] = None
    tag_ids: FrozenSet[uuid.UUID] = frozenset()
    collection_id: Optional[Union[uuid.UUID, str]] = None

    def __post_init__(self):
        text = (self.text or "").strip() or None
        tag_ids = frozenset(_as_uuid(t, "category") for t in (self.tag_ids or ()))
        collection_id = self.collection_id
        if collection_id is not None and collection_id != UNASSIGNED:
            collection_id = _as_uuid(collection_id, "folder")
        object.__setattr__(self, "text", text)
        object.__setattr__(self, "tag_ids", tag_ids)
        object.__setattr__(self, "collection_id", collection_id)

    @classmethod
    def from_params(cls, params: Mapping) -> "SearchFilters":
        """쿼리스트링 형태 입력 (?query=...&categories=a,b&folder=...)"""
        getlist = getattr(params, "getlist", None)

        def _many(key):
            return getlist(key) if getlist else params.get(key)

        tag_ids = _split_ids(_many("categories")) + _split_ids(_many("tags"))
        collection = params.get("folder") or params.get("collection") or None
        return cls(
            text=params.get("query") or params.get("text"),
            tag_ids=frozenset(tag_ids),
            collection_id=collection,
        )

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.tag_ids and self.collection_id is None


def build_search_q(user, filters: SearchFilters) -> Q:
    """
    검색 조건을 Q 트리로 만든다. 사용자 입력은 모두 바인딩 파라미터로만 들어간다.
    항상 user 로 한정.
    """
    q = Q(user=user)

    if filters.text:
        # 양쪽을 소문자로 맞춘 뒤 부분 일치 (비 ASCII 포함)
        text = filters.text.lower()
        matches = Q()
        for field in TEXT_FIELDS:
            matches |= Q(Contains(UnicodeLower(field), text))
        q &= matches

    if filters.tag_ids:
        # 태그 조인 대신 EXISTS → 태그가 여러 개 걸려도 장소 중복 없음
        has_tag = PlaceTag.objects.filter(
            place=OuterRef("pk"),
            tag_id__in=filters.tag_ids,
            tag__user=user,
        )
        q &= Q(Exists(has_tag))

    if filters.collection_id == UNASSIGNED:
        q &= Q(collection__isnull=True)
    elif filters.collection_id is not None:
        q &= Q(collection_id=filters.collection_id)

    return q


def search_places(user, filters: Optional[SearchFilters] = None, *, using: str = DEFAULT_DB_ALIAS) -> List[Place]:
    """사용자 장소 검색, 최신순. 결과 없음은 오류가 아니다."""
    filters = filters or SearchFilters()
    qs = (
        Place.objects.using(using)
        .filter(build_search_q(user, filters))
        .select_related("collection")
        .prefetch_related("tags")
        .order_by("-created_at")
    )
    try:
        places = list(qs)
    except DatabaseError as e:
        logger.error("place search failed for user %s: %s", user.pk, e)
        raise StorageError(f"Search failed: {e}") from e
    return places


def find_tag_ids_by_names(user, names: Iterable[str], *, using: str = DEFAULT_DB_ALIAS) -> FrozenSet[uuid.UUID]:
    """태그 이름 → id (새로 만들지 않음). 없는 이름은 무시"""
    names = [n.strip() for n in names if n and n.strip()]
    if not names:
        return frozenset()
    try:
        return frozenset(
            Tag.objects.using(using).filter(user=user, name__in=names).values_list("id", flat=True)
        )
    except DatabaseError as e:
        raise StorageError(str(e)) from e
