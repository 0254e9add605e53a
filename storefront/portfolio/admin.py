from django.contrib import admin
from .models import PortfolioItem


@admin.register(PortfolioItem)
class PortfolioItemAdmin(admin.ModelAdmin):
    list_display = ['title', 'display_order', 'featured', 'created_at']
    list_editable = ['display_order', 'featured']
    list_filter = ['featured']
    search_fields = ['title']
