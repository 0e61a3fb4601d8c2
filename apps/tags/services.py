import logging
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, IntegrityError, transaction

from apps.places.exceptions import InvalidInput, StorageError
from .models import Tag

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = Tag._meta.get_field("name").max_length


def clean_tag_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Tag name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise InvalidInput(f"Tag name must be at most {NAME_MAX_LENGTH} characters")
    return name


def resolve_tag(user, name: str, *, using: str = DEFAULT_DB_ALIAS):
    """
    태그 이름 → 태그 id (없으면 기본 색상으로 생성).

    (user, name) 유니크 제약 위에서 get_or_create 로 처리하므로
    동시에 같은 이름을 풀어도 태그는 하나만 생긴다.
    경쟁에서 진 쪽은 get_or_create 안에서 IntegrityError 후 이긴 쪽 행을 다시 읽는다.
    """
    name = clean_tag_name(name)
    try:
        with transaction.atomic(using=using):
            tag, created = Tag.objects.using(using).get_or_create(
                user=user,
                name=name,
                defaults={"color": settings.TAG_DEFAULT_COLOR},
            )
    except IntegrityError as e:
        # 이긴 쪽 행을 다시 읽기 전에 그 행이 지워진 경우
        raise StorageError(f"Tag '{name}' vanished while resolving") from e
    except DatabaseError as e:
        raise StorageError(f"Failed to resolve tag '{name}': {e}") from e

    if created:
        logger.debug("created tag %r for user %s", name, user.pk)
    return tag.pk


def create_tag(user, name: str, color: Optional[str] = None, *, using: str = DEFAULT_DB_ALIAS) -> Tag:
    name = clean_tag_name(name)
    color = (color or "").strip() or settings.TAG_DEFAULT_COLOR
    try:
        with transaction.atomic(using=using):
            return Tag.objects.using(using).create(user=user, name=name, color=color)
    except IntegrityError:
        raise InvalidInput(f"Tag '{name}' already exists") from None
    except DatabaseError as e:
        raise StorageError(f"Failed to create tag '{name}': {e}") from e


def list_tags(user, *, using: str = DEFAULT_DB_ALIAS):
    return Tag.objects.using(using).filter(user=user).order_by("-created_at")


def get_user_tag(user, tag_id, *, using: str = DEFAULT_DB_ALIAS) -> Tag:
    """다른 사용자의 태그 id 는 존재하지 않는 것과 같게 취급"""
    try:
        return Tag.objects.using(using).get(pk=tag_id, user=user)
    except (Tag.DoesNotExist, ValidationError, ValueError, TypeError):
        raise InvalidInput("Category not found") from None
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def delete_tag(user, tag_id, *, using: str = DEFAULT_DB_ALIAS) -> None:
    tag = get_user_tag(user, tag_id, using=using)
    try:
        # 연결된 PlaceTag 는 CASCADE 로 함께 삭제
        tag.delete(using=using)
    except DatabaseError as e:
        raise StorageError(str(e)) from e
