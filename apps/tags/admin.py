from django.contrib import admin
from .models import Tag


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'color', 'user', 'created_at')
    search_fields = ('name',)
    raw_id_fields = ('user',)
