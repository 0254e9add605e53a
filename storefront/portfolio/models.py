from django.db import models


class PortfolioItem(models.Model):
    """Gallery pictures shown on the portfolio page"""
    title = models.CharField(max_length=200)
    image_url = models.URLField(max_length=500)
    display_order = models.IntegerField(default=0, db_index=True)
    featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'portfolio_items'
        ordering = ['display_order', '-created_at', '-id']
