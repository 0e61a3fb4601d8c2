import uuid

from django.conf import settings
from django.db import models


def default_collection_color():
    return settings.COLLECTION_DEFAULT_COLOR


class Collection(models.Model):
    """
    장소를 묶는 폴더(리스트).
    place_count 는 저장하지 않고 조회 시 Count 로만 계산한다.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="collections", on_delete=models.CASCADE)
    name = models.CharField(max_length=200)
    color = models.CharField(max_length=32, default=default_collection_color)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.name
