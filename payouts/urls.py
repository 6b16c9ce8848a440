from django.urls import path
from . import views

app_name = 'payouts'

urlpatterns = [
    # кабинет организатора
    path('earnings/', views.earnings, name='earnings'),
    path('banks/', views.banks, name='banks'),
    path('verify-bank/', views.verify_bank, name='verify_bank'),
    path('withdraw/', views.withdraw, name='withdraw'),
    path('withdrawals/', views.withdrawals, name='withdrawals'),

    # администратор
    path('admin/withdrawals/', views.admin_withdrawals, name='admin_withdrawals'),
    path('admin/withdrawals/bulk/<str:action>/', views.admin_bulk_action, name='admin_bulk_action'),
    path('admin/withdrawals/<int:pk>/<str:action>/', views.admin_withdrawal_action, name='admin_withdrawal_action'),
]
