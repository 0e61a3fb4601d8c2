import uuid

import pytest

from apps.folders.models import Collection
from apps.places.exceptions import InvalidInput
from apps.places.models import Place, PlaceTag
from apps.places.services import (
    attach_tag,
    create_place,
    delete_all_places,
    delete_place,
    detach_tag,
    get_user_place,
)
from apps.tags.models import Tag

pytestmark = pytest.mark.django_db


def test_create_place_defaults(user):
    place = create_place(user, "  Joe's Coffee ")

    assert place.name == "Joe's Coffee"
    assert place.address == ""
    assert (place.latitude, place.longitude) == (0.0, 0.0)
    assert place.collection is None
    assert place.notes is None


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_place_requires_name(user, name):
    with pytest.raises(InvalidInput):
        create_place(user, name)
    assert not Place.objects.exists()


def test_create_place_in_own_collection(user):
    trip = Collection.objects.create(user=user, name="Trip")

    place = create_place(user, "Cafe", collection_id=trip.pk, rating=4.5)

    assert place.collection == trip
    assert place.rating == 4.5


def test_create_place_in_foreign_collection_is_rejected(user, other_user):
    theirs = Collection.objects.create(user=other_user, name="Theirs")

    with pytest.raises(InvalidInput):
        create_place(user, "Cafe", collection_id=theirs.pk)
    assert not Place.objects.exists()


def test_get_user_place_hides_other_users_places(user, other_user):
    theirs = Place.objects.create(user=other_user, name="Theirs")

    with pytest.raises(InvalidInput):
        get_user_place(user, theirs.pk)
    with pytest.raises(InvalidInput):
        get_user_place(user, "not-a-uuid")


def test_attach_tag_is_idempotent(user):
    place = Place.objects.create(user=user, name="Cafe")
    tag = Tag.objects.create(user=user, name="Coffee")

    assert attach_tag(user, place.pk, tag.pk) is True
    assert attach_tag(user, place.pk, tag.pk) is False
    assert PlaceTag.objects.filter(place=place, tag=tag).count() == 1


def test_attach_foreign_tag_is_rejected(user, other_user):
    place = Place.objects.create(user=user, name="Cafe")
    theirs = Tag.objects.create(user=other_user, name="Coffee")

    with pytest.raises(InvalidInput):
        attach_tag(user, place.pk, theirs.pk)
    assert not PlaceTag.objects.exists()


def test_detach_tag(user):
    place = Place.objects.create(user=user, name="Cafe")
    coffee = Tag.objects.create(user=user, name="Coffee")
    brunch = Tag.objects.create(user=user, name="Brunch")
    place.tags.add(coffee, brunch)

    detach_tag(user, place.pk, coffee.pk)

    assert list(place.tags.values_list("name", flat=True)) == ["Brunch"]
    assert Tag.objects.filter(pk=coffee.pk).exists()
    # 달려 있지 않은 태그 해제는 조용히 끝난다
    detach_tag(user, place.pk, uuid.uuid4())


def test_delete_place_keeps_tags(user):
    place = Place.objects.create(user=user, name="Cafe")
    tag = Tag.objects.create(user=user, name="Coffee")
    place.tags.add(tag)

    delete_place(user, place.pk)

    assert not Place.objects.exists()
    assert not PlaceTag.objects.exists()
    assert Tag.objects.filter(pk=tag.pk).exists()


def test_delete_all_places_counts_only_own(user, other_user):
    tag = Tag.objects.create(user=user, name="Coffee")
    for name in ("a", "b", "c"):
        Place.objects.create(user=user, name=name).tags.add(tag)
    Place.objects.create(user=other_user, name="theirs")

    assert delete_all_places(user) == 3
    assert list(Place.objects.values_list("name", flat=True)) == ["theirs"]
    assert delete_all_places(user) == 0
