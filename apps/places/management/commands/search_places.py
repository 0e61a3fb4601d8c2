import json
from typing import List

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from apps.places.exceptions import InvalidInput, StorageError
from apps.places.models import Place
from apps.places.search import SearchFilters, find_tag_ids_by_names, search_places


class Command(BaseCommand):
    help = "사용자 장소 검색 (텍스트 + 태그(OR) + 폴더, 최신순)"

    def add_arguments(self, parser):
        parser.add_argument('--user', required=True, help='검색할 사용자 username')
        parser.add_argument('--query', type=str, help='이름/주소/메모 부분 검색어')
        parser.add_argument('--tags', type=str, help='태그 이름 (쉼표로 구분, 하나라도 달린 장소)')
        parser.add_argument('--collection', type=str, help="폴더 id 또는 'unassigned'")
        parser.add_argument('--limit', type=int, default=50, help='출력 개수 제한')
        parser.add_argument('--output', type=str, help='결과를 저장할 JSON 파일 경로')

    def handle(self, *args, **options):
        User = get_user_model()
        try:
            user = User.objects.get(**{User.USERNAME_FIELD: options['user']})
        except User.DoesNotExist:
            raise CommandError(f"사용자를 찾을 수 없습니다: {options['user']}")

        tag_ids = frozenset()
        if options.get('tags'):
            names = [tag.strip() for tag in options['tags'].split(',')]
            tag_ids = find_tag_ids_by_names(user, names)
            if not tag_ids:
                # 아는 태그가 하나도 없으면 필터 없음이 아니라 결과 없음
                self.stdout.write("❌ 일치하는 태그가 없습니다.")
                return

        try:
            filters = SearchFilters(
                text=options.get('query'),
                tag_ids=tag_ids,
                collection_id=options.get('collection'),
            )
            results = search_places(user, filters)
        except InvalidInput as e:
            raise CommandError(str(e))
        except StorageError as e:
            raise CommandError(f"검색 실패: {e}")

        self._print_search_results(results[:options['limit']], total=len(results))

        if options.get('output'):
            self._save_results_to_json(results, options['output'])

    def _print_search_results(self, results: List[Place], total: int):
        """검색 결과 출력"""
        if not results:
            self.stdout.write("❌ 검색 결과가 없습니다.")
            return

        self.stdout.write(f"\n📊 검색 결과 ({total}개):")
        self.stdout.write("-" * 80)

        for i, place in enumerate(results, 1):
            tags = [tag.name for tag in place.tags.all()]
            self.stdout.write(f"{i}. {place.name}")
            if place.address:
                self.stdout.write(f"   📍 {place.address}")
            self.stdout.write(f"   🏷️ {', '.join(tags) if tags else '태그 없음'}")
            self.stdout.write(f"   📁 {place.collection.name if place.collection else '미분류'}")
            if place.notes:
                notes = place.notes[:100] + "..." if len(place.notes) > 100 else place.notes
                self.stdout.write(f"   📝 {notes}")
            self.stdout.write("")

    def _save_results_to_json(self, results: List[Place], filepath: str):
        """결과를 JSON 파일로 저장"""
        serializable_results = [
            {
                'id': place.id,
                'name': place.name,
                'address': place.address,
                'latitude': place.latitude,
                'longitude': place.longitude,
                'placeId': place.external_place_id,
                'url': place.url,
                'rating': place.rating,
                'notes': place.notes,
                'folderId': place.collection_id,
                'createdAt': place.created_at,
                'updatedAt': place.updated_at,
                'categories': [
                    {'id': tag.id, 'name': tag.name, 'color': tag.color}
                    for tag in place.tags.all()
                ],
            }
            for place in results
        ]
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(serializable_results, f, ensure_ascii=False, indent=2, cls=DjangoJSONEncoder)
        except OSError as e:
            raise CommandError(f"결과 저장 실패: {e}")

        self.stdout.write(f"💾 결과가 {filepath}에 저장되었습니다.")


# 사용 예시:
# python manage.py search_places --user alice --query "coffee" --tags "Coffee,Brunch"
# python manage.py search_places --user alice --collection unassigned --output places.json
