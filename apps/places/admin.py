from django.contrib import admin
from .models import Place, PlaceTag


class PlaceTagInline(admin.TabularInline):
    model = PlaceTag
    extra = 0
    raw_id_fields = ('tag',)


@admin.register(Place)
class PlaceAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'user', 'collection', 'external_place_id', 'created_at')
    list_filter = ('user',)
    search_fields = ('name', 'address', 'notes')
    raw_id_fields = ('user', 'collection')
    inlines = [PlaceTagInline]
