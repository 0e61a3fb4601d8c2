import threading
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.db import connection
from django.db.models.query import QuerySet

from apps.places.exceptions import InvalidInput, StorageError
from apps.places.models import Place, PlaceTag
from apps.tags.models import Tag
from apps.tags.services import create_tag, delete_tag, list_tags, resolve_tag

pytestmark = pytest.mark.django_db


def test_resolve_creates_then_reuses(user):
    first = resolve_tag(user, "Coffee")
    second = resolve_tag(user, "Coffee")

    assert first == second
    assert Tag.objects.filter(user=user, name="Coffee").count() == 1


def test_resolve_many_times_yields_one_row(user):
    ids = {resolve_tag(user, "Brunch") for _ in range(10)}

    assert len(ids) == 1
    assert Tag.objects.filter(user=user).count() == 1


def test_resolve_trims_and_uses_default_color(user, settings):
    settings.TAG_DEFAULT_COLOR = "#123456"
    tag_id = resolve_tag(user, "  Bakery \t")

    tag = Tag.objects.get(pk=tag_id)
    assert tag.name == "Bakery"
    assert tag.color == "#123456"
    assert resolve_tag(user, "Bakery") == tag_id


@pytest.mark.parametrize("name", ["", "   ", None])
def test_resolve_rejects_empty_name(user, name):
    with pytest.raises(InvalidInput):
        resolve_tag(user, name)
    assert not Tag.objects.exists()


def test_resolve_rejects_overlong_name(user):
    with pytest.raises(InvalidInput):
        resolve_tag(user, "x" * 101)


def test_tag_names_are_case_sensitive(user):
    upper = resolve_tag(user, "Coffee")
    lower = resolve_tag(user, "coffee")

    assert upper != lower
    assert set(Tag.objects.filter(user=user).values_list("name", flat=True)) == {"Coffee", "coffee"}


def test_tags_are_scoped_per_user(user, other_user):
    assert resolve_tag(user, "Coffee") != resolve_tag(other_user, "Coffee")


def test_resolve_rereads_row_inserted_by_concurrent_writer(user):
    # 조회 시점엔 없었는데 INSERT 직전에 다른 트랜잭션이 먼저 넣은 상황
    existing = Tag.objects.create(user=user, name="Coffee")
    real_get = QuerySet.get
    calls = {"n": 0}

    def racing_get(self, *args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise self.model.DoesNotExist
        return real_get(self, *args, **kwargs)

    with mock.patch.object(QuerySet, "get", autospec=True, side_effect=racing_get):
        tag_id = resolve_tag(user, "Coffee")

    assert tag_id == existing.pk
    assert Tag.objects.filter(user=user, name="Coffee").count() == 1


def test_resolve_reports_row_deleted_before_reread(user):
    # 경쟁에서 졌는데 이긴 쪽 행도 다시 읽을 수 없음
    Tag.objects.create(user=user, name="Coffee")

    with mock.patch.object(QuerySet, "get", autospec=True, side_effect=Tag.DoesNotExist):
        with pytest.raises(StorageError):
            resolve_tag(user, "Coffee")


@pytest.mark.django_db(transaction=True)
def test_concurrent_resolves_share_one_tag():
    user = get_user_model().objects.create_user(username="carol", password="pw-carol")
    workers = 8
    barrier = threading.Barrier(workers)
    ids, errors = [], []

    def resolve():
        try:
            barrier.wait()
            ids.append(resolve_tag(user, "Coffee"))
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=resolve) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(ids) == workers
    assert len(set(ids)) == 1
    assert Tag.objects.filter(user=user, name="Coffee").count() == 1


def test_create_tag_rejects_duplicates(user):
    create_tag(user, "Bars", color="🍺")
    with pytest.raises(InvalidInput):
        create_tag(user, "Bars")


def test_color_kind():
    assert Tag(name="a", color="#3B82F6").color_kind == "hex"
    assert Tag(name="b", color="#fff").color_kind == "hex"
    assert Tag(name="c", color="☕").color_kind == "emoji"


def test_delete_tag_removes_membership_only(user):
    tag = create_tag(user, "Coffee")
    place = Place.objects.create(user=user, name="Joe's")
    place.tags.add(tag)

    delete_tag(user, tag.pk)

    assert Place.objects.filter(pk=place.pk).exists()
    assert not PlaceTag.objects.exists()


def test_delete_tag_of_other_user_is_rejected(user, other_user):
    tag = create_tag(other_user, "Coffee")
    with pytest.raises(InvalidInput):
        delete_tag(user, tag.pk)
    assert Tag.objects.filter(pk=tag.pk).exists()


def test_list_tags_only_returns_own(user, other_user):
    create_tag(user, "Mine")
    create_tag(other_user, "Theirs")

    assert [t.name for t in list_tags(user)] == ["Mine"]
