from django.urls import path
from . import views

app_name = 'events'

urlpatterns = [
    # кабинет организатора
    path('my/', views.my_events, name='my_events'),
    path('create/', views.event_create, name='create'),
    path('<int:pk>/edit/', views.event_edit, name='edit'),
    path('<int:pk>/ticket-tiers/', views.ticket_tier_create, name='ticket_tier_create'),
    path('<int:pk>/attendees/', views.event_attendees, name='attendees'),
    path('<int:pk>/attendees/export/', views.event_attendees_export, name='attendees_export'),

    # публичные
    path('', views.event_list, name='list'),
    path('category/<slug:slug>/', views.event_list, name='category'),
    path('<slug:slug>/', views.event_detail, name='detail'),
]
