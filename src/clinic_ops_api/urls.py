from django.contrib import admin
from django.urls import include, path
from django_prometheus.exports import ExportToDjangoView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('plugins.django_interface.urls')),
    path('metrics/', ExportToDjangoView, name='prometheus-metrics'),
]
