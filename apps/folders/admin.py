from django.contrib import admin
from django.db.models import Count
from .models import Collection


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'color', 'user', 'place_count', 'created_at')
    search_fields = ('name',)
    raw_id_fields = ('user',)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(place_count=Count('places', distinct=True))

    @admin.display(ordering='place_count')
    def place_count(self, obj):
        return obj.place_count
