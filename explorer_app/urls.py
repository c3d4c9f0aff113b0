from django.urls import path

from . import views

app_name = 'explorer_app'

urlpatterns = [
    path("", views.index, name="index"),
    path("logout", views.logout, name="logout"),
    path("pipeline", views.pipeline, name="pipeline"),
    path("pipeline/url", views.pipeline_url, name="pipeline_url"),
    path("job", views.job_action, name="job_action"),
    path("tags", views.tags, name="tags"),
    path("tags/delete", views.tag_delete, name="tag_delete"),
]
