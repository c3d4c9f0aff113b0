from django.urls import path, include

urlpatterns = [
    path('', include('explorer_app.urls', namespace='explorer_app')),
]
