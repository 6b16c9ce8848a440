from django.urls import path
from . import views

app_name = 'tickets'

urlpatterns = [
    path('book-free/', views.book_free, name='book_free'),
    path('my/', views.my_tickets, name='my_tickets'),
    path('check-in/', views.check_in, name='check_in'),
    path('<str:code>/pdf/', views.ticket_pdf, name='ticket_pdf'),
]
