import re
import uuid

from django.conf import settings
from django.db import models

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def default_tag_color():
    return settings.TAG_DEFAULT_COLOR


class Tag(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, related_name="tags", on_delete=models.CASCADE)
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=32, default=default_tag_color)  # hex 코드 또는 이모지
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        # 사용자별 태그 이름은 유일 (대소문자 구분)
        constraints = [
            models.UniqueConstraint(fields=["user", "name"], name="unique_user_tag_name")
        ]

    def __str__(self):
        return self.name

    @property
    def color_kind(self) -> str:
        return "hex" if HEX_COLOR_RE.match(self.color or "") else "emoji"
