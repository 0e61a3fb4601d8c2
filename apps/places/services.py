from typing import Optional

from django.core.exceptions import ValidationError
from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction

from .exceptions import InvalidInput, StorageError
from .models import Place, PlaceTag


def get_user_place(user, place_id, *, using: str = DEFAULT_DB_ALIAS) -> Place:
    try:
        return Place.objects.using(using).get(pk=place_id, user=user)
    except (Place.DoesNotExist, ValidationError, ValueError, TypeError):
        raise InvalidInput("Place not found") from None
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def create_place(
    user,
    name: str,
    address: str = "",
    latitude: float = 0.0,
    longitude: float = 0.0,
    *,
    external_place_id: Optional[str] = None,
    url: Optional[str] = None,
    notes: Optional[str] = None,
    rating: Optional[float] = None,
    collection_id=None,
    using: str = DEFAULT_DB_ALIAS,
) -> Place:
    """단일 장소 생성 (원자적 INSERT 1회)"""
    name = (name or "").strip()
    if not name:
        raise InvalidInput("Place name is required")

    collection = None
    if collection_id is not None:
        from apps.folders.services import get_user_collection
        collection = get_user_collection(user, collection_id, using=using)

    try:
        return Place.objects.using(using).create(
            user=user,
            name=name,
            address=address or "",
            latitude=latitude,
            longitude=longitude,
            external_place_id=external_place_id,
            url=url,
            notes=notes,
            rating=rating,
            collection=collection,
        )
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def link_tag(place_id, tag_id, *, using: str = DEFAULT_DB_ALIAS) -> bool:
    """
    장소-태그 연결. 이미 연결돼 있으면 아무것도 하지 않는다.
    소유자 확인은 호출자 몫 (attach_tag / 가져오기 파이프라인).
    """
    try:
        with transaction.atomic(using=using):
            _, created = PlaceTag.objects.using(using).get_or_create(place_id=place_id, tag_id=tag_id)
    except DatabaseError as e:
        raise StorageError(str(e)) from e
    return created


def attach_tag(user, place_id, tag_id, *, using: str = DEFAULT_DB_ALIAS) -> bool:
    from apps.tags.services import get_user_tag

    place = get_user_place(user, place_id, using=using)
    tag = get_user_tag(user, tag_id, using=using)
    return link_tag(place.pk, tag.pk, using=using)


def detach_tag(user, place_id, tag_id, *, using: str = DEFAULT_DB_ALIAS) -> None:
    place = get_user_place(user, place_id, using=using)
    try:
        PlaceTag.objects.using(using).filter(place=place, tag_id=tag_id, tag__user=user).delete()
    except (ValidationError, ValueError, TypeError):
        raise InvalidInput("Category not found") from None
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def delete_place(user, place_id, *, using: str = DEFAULT_DB_ALIAS) -> None:
    place = get_user_place(user, place_id, using=using)
    try:
        place.delete(using=using)
    except DatabaseError as e:
        raise StorageError(str(e)) from e


def delete_all_places(user, *, using: str = DEFAULT_DB_ALIAS) -> int:
    try:
        with transaction.atomic(using=using):
            deleted, per_model = Place.objects.using(using).filter(user=user).delete()
    except DatabaseError as e:
        raise StorageError(str(e)) from e
    return per_model.get(Place._meta.label, 0)
