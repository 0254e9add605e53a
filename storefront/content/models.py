from django.db import models


class PageContent(models.Model):
    """Editable text blocks of the storefront pages, keyed by page id"""
    page_id = models.SlugField(max_length=100, unique=True)
    title = models.CharField(max_length=200)
    content = models.TextField()
    last_updated = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.page_id

    class Meta:
        db_table = 'page_contents'
        ordering = ['page_id']
