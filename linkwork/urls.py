from django.contrib import admin
from django.urls import include, path

from social import views


urlpatterns = [
    path("", views.index, name="index"),
    path("admin/", admin.site.urls),
    path("api/", include("social.urls")),
]

handler404 = "social.views.not_found"
handler500 = "social.views.server_error"
