from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('initialize/', views.initialize, name='initialize'),
    path('webhook/', views.webhook, name='webhook'),
    path('verify/', views.verify, name='verify'),
]
