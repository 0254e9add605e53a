from django.contrib import admin
from .models import PageContent


@admin.register(PageContent)
class PageContentAdmin(admin.ModelAdmin):
    list_display = ['page_id', 'title', 'last_updated']
    search_fields = ['page_id', 'title']
