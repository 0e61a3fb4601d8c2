import pytest

from apps.folders.models import Collection
from apps.folders.services import (
    collections_with_counts,
    create_collection,
    delete_collection,
    move_place,
    remove_place,
    rename_collection,
)
from apps.places.exceptions import InvalidInput
from apps.places.models import Place

pytestmark = pytest.mark.django_db


def _place(user, name, collection=None):
    return Place.objects.create(user=user, name=name, collection=collection)


def test_create_collection_defaults_color(user, settings):
    settings.COLLECTION_DEFAULT_COLOR = "#ABCDEF"
    collection = create_collection(user, "  Seoul trip ")

    assert collection.name == "Seoul trip"
    assert collection.color == "#ABCDEF"


def test_create_collection_requires_name(user):
    with pytest.raises(InvalidInput):
        create_collection(user, " ")


def test_place_count_follows_members(user):
    trip = create_collection(user, "Trip")
    empty = create_collection(user, "Empty")
    for name in ("a", "b"):
        _place(user, name, trip)
    _place(user, "loose")

    counts = {c.name: c.place_count for c in collections_with_counts(user)}
    assert counts == {"Trip": 2, "Empty": 0}
    assert empty.pk in {c.pk for c in collections_with_counts(user)}


def test_delete_collection_unassigns_places(user):
    trip = create_collection(user, "Trip")
    places = [_place(user, f"p{i}", trip) for i in range(3)]

    unassigned = delete_collection(user, trip.pk)

    assert unassigned == 3
    assert not Collection.objects.filter(pk=trip.pk).exists()
    for place in places:
        place.refresh_from_db()
        assert place.collection_id is None
    assert trip.pk not in {c.pk for c in collections_with_counts(user)}


def test_delete_collection_of_other_user_is_rejected(user, other_user):
    theirs = create_collection(other_user, "Theirs")
    with pytest.raises(InvalidInput):
        delete_collection(user, theirs.pk)
    assert Collection.objects.filter(pk=theirs.pk).exists()


def test_rename_collection(user):
    trip = create_collection(user, "Trip")
    rename_collection(user, trip.pk, "Busan", color="🌊")

    trip.refresh_from_db()
    assert trip.name == "Busan"
    assert trip.color == "🌊"


def test_move_place_between_collections(user):
    a = create_collection(user, "A")
    b = create_collection(user, "B")
    place = _place(user, "cafe", a)

    move_place(user, place.pk, b.pk)
    place.refresh_from_db()
    assert place.collection_id == b.pk

    move_place(user, place.pk, None)
    place.refresh_from_db()
    assert place.collection_id is None


def test_move_place_into_foreign_collection_is_rejected(user, other_user):
    theirs = create_collection(other_user, "Theirs")
    place = _place(user, "cafe")

    with pytest.raises(InvalidInput):
        move_place(user, place.pk, theirs.pk)
    place.refresh_from_db()
    assert place.collection_id is None


def test_remove_place_requires_membership(user):
    a = create_collection(user, "A")
    b = create_collection(user, "B")
    place = _place(user, "cafe", a)

    with pytest.raises(InvalidInput):
        remove_place(user, b.pk, place.pk)

    remove_place(user, a.pk, place.pk)
    place.refresh_from_db()
    assert place.collection_id is None
