import uuid

from django.conf import settings
from django.db import models
from apps.folders.models import Collection
from apps.tags.models import Tag


class Place(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="places", on_delete=models.CASCADE)
    name = models.CharField(max_length=300)
    address = models.CharField(max_length=500, blank=True, default="")  # 가져오기 행은 주소 없음
    latitude = models.FloatField(default=0.0)  # 좌표 미상이면 0.0 (지오코딩 안 함)
    longitude = models.FloatField(default=0.0)
    external_place_id = models.CharField(max_length=100, blank=True, null=True)  # 지도 URL 안의 장소 ID
    url = models.URLField(max_length=2000, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    rating = models.FloatField(blank=True, null=True)
    # 폴더 삭제 시 장소는 남기고 "미분류"로
    collection = models.ForeignKey(
        Collection,
        related_name="places",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    tags = models.ManyToManyField(Tag, through="PlaceTag", blank=True, related_name="places")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="place_user_created_idx"),
            models.Index(fields=["name"], name="place_name_idx"),
        ]

    def __str__(self):
        return self.name


class PlaceTag(models.Model):
    place = models.ForeignKey(Place, on_delete=models.CASCADE)
    tag = models.ForeignKey(Tag, on_delete=models.CASCADE)

    class Meta: # 장소와 태그 쌍은 유일.
        constraints = [
            models.UniqueConstraint(fields=["place", "tag"], name="unique_place_tag")
        ]

    def __str__(self):
        return f"{self.place} #{self.tag}"
