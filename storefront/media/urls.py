from django.urls import path
from .views import upload_image, upload_multiple_images

urlpatterns = [
    path('', upload_image, name='upload-image'),
    path('multiple/', upload_multiple_images, name='upload-multiple-images'),
]
