import logging
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from apps.places.exceptions import InvalidInput, StorageError
from .models import Collection

logger = logging.getLogger(__name__)


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Folder name is required")
    return name


def get_user_collection(user, collection_id, *, using: str = DEFAULT_DB_ALIAS) -> Collection:
    try:
        return Collection.objects.using(using).get(pk=collection_id, user=user)
    except (Collection.DoesNotExist, ValidationError, ValueError, TypeError):
        raise InvalidInput("Folder not found") from None
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def create_collection(user, name: str, color: Optional[str] = None, *, using: str = DEFAULT_DB_ALIAS) -> Collection:
    name = _clean_name(name)
    try:
        return Collection.objects.using(using).create(
            user=user,
            name=name,
            color=color or settings.COLLECTION_DEFAULT_COLOR,
        )
    except DatabaseError as e:
        raise StorageError(f"Failed to create folder '{name}': {e}") from e


def rename_collection(user, collection_id, name: str, color: Optional[str] = None,
                      *, using: str = DEFAULT_DB_ALIAS) -> Collection:
    collection = get_user_collection(user, collection_id, using=using)
    collection.name = _clean_name(name)
    if color:
        collection.color = color
    try:
        collection.save(using=using, update_fields=["name", "color"])
    except DatabaseError as e:
        raise StorageError(str(e)) from e
    return collection


def delete_collection(user, collection_id, *, using: str = DEFAULT_DB_ALIAS) -> int:
    """
    폴더 삭제. 소속 장소는 지우지 않고 미분류(collection=NULL)로 돌린다.
    반환값: 미분류로 바뀐 장소 수
    """
    from apps.places.models import Place

    collection = get_user_collection(user, collection_id, using=using)
    try:
        with transaction.atomic(using=using):
            unassigned = (
                Place.objects.using(using)
                .filter(user=user, collection=collection)
                .update(collection=None, updated_at=timezone.now())
            )
            collection.delete(using=using)
    except DatabaseError as e:
        raise StorageError(str(e)) from e

    logger.info("deleted folder %s (%d places unassigned)", collection_id, unassigned)
    return unassigned


def collections_with_counts(user, *, using: str = DEFAULT_DB_ALIAS):
    # place_count 는 매번 계산 (저장 값 없음)
    return (
        Collection.objects.using(using)
        .filter(user=user)
        .annotate(place_count=Count("places", distinct=True))
        .order_by("-created_at")
    )


def move_place(user, place_id, collection_id, *, using: str = DEFAULT_DB_ALIAS):
    """장소를 폴더로 이동. collection_id=None 이면 미분류로."""
    from apps.places.services import get_user_place

    place = get_user_place(user, place_id, using=using)
    collection = None
    if collection_id is not None:
        collection = get_user_collection(user, collection_id, using=using)

    place.collection = collection
    try:
        place.save(using=using, update_fields=["collection", "updated_at"])
    except DatabaseError as e:
        raise StorageError(str(e)) from e
    return place


def remove_place(user, collection_id, place_id, *, using: str = DEFAULT_DB_ALIAS) -> None:
    from apps.places.models import Place

    try:
        changed = (
            Place.objects.using(using)
            .filter(pk=place_id, user=user, collection_id=collection_id)
            .update(collection=None, updated_at=timezone.now())
        )
    except (ValidationError, ValueError, TypeError):
        raise InvalidInput("Place not found in folder") from None
    except DatabaseError as e:
        raise StorageError(str(e)) from e
    if not changed:
        raise InvalidInput("Place not found in folder")
