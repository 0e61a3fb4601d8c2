import json
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from apps.places.models import Place
from apps.tags.models import Tag

from .factories import maps_url, takeout_csv

pytestmark = pytest.mark.django_db


@pytest.fixture
def saved_csv(tmp_path):
    path = tmp_path / "Saved Places.csv"
    path.write_text(takeout_csv([
        ("Joe's Coffee", "quiet", maps_url(), "Coffee, Brunch", ""),
        ("Blue Bottle", "", maps_url("Blue+Bottle"), "Coffee", "go early"),
        ("", "", maps_url("Nameless"), "", ""),
        ("Some article", "", "https://example.com/post", "", ""),
    ]), encoding="utf-8")
    return path


def _import(**options):
    out, err = StringIO(), StringIO()
    call_command("import_takeout", stdout=out, stderr=err, **options)
    return out.getvalue(), err.getvalue()


def test_import_takeout_command(user, saved_csv):
    out, err = _import(csv=str(saved_csv), user="alice")

    assert "imported=2, skipped=1, failed=1" in out
    assert "row 3: Missing title" in out
    assert "[row 3]" in err
    assert set(Place.objects.filter(user=user).values_list("name", flat=True)) == {"Joe's Coffee", "Blue Bottle"}
    assert Tag.objects.filter(user=user).count() == 2


def test_import_takeout_dry_run(user, saved_csv):
    out, _ = _import(csv=str(saved_csv), user="alice", dry_run=True)

    assert "(dry-run)" in out
    assert "imported=2" in out
    assert not Place.objects.exists()


def test_import_takeout_unknown_user(saved_csv):
    with pytest.raises(CommandError):
        _import(csv=str(saved_csv), user="nobody")


def test_import_takeout_missing_file(user, tmp_path):
    with pytest.raises(CommandError):
        _import(csv=str(tmp_path / "missing.csv"), user="alice")


def test_import_takeout_corrupt_file(user, tmp_path):
    path = tmp_path / "broken.csv"
    path.write_bytes(b"Title,URL\n\xff\xfe\xfa,x\n")

    with pytest.raises(CommandError):
        _import(csv=str(path), user="alice")
    assert not Place.objects.exists()


def test_search_places_command(user, tmp_path):
    coffee = Tag.objects.create(user=user, name="Coffee")
    cafe = Place.objects.create(user=user, name="Joe's Coffee", notes="quiet")
    cafe.tags.add(coffee)
    Place.objects.create(user=user, name="Bar")
    output = tmp_path / "places.json"

    out = StringIO()
    call_command("search_places", user="alice", tags="Coffee", output=str(output), stdout=out)

    assert "검색 결과 (1개)" in out.getvalue()
    assert "Joe's Coffee" in out.getvalue()
    saved = json.loads(output.read_text(encoding="utf-8"))
    assert [p["name"] for p in saved] == ["Joe's Coffee"]
    assert saved[0]["categories"][0]["name"] == "Coffee"
    assert saved[0]["folderId"] is None


def test_search_places_unknown_tag_names(user):
    Place.objects.create(user=user, name="Bar")

    out = StringIO()
    call_command("search_places", user="alice", tags="Nope", stdout=out)

    assert "일치하는 태그가 없습니다" in out.getvalue()


def test_search_places_bad_collection_id(user):
    with pytest.raises(CommandError):
        call_command("search_places", user="alice", collection="not-a-uuid", stdout=StringIO())
