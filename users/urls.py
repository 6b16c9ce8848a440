from django.urls import path
from . import views

app_name = 'users'

urlpatterns = [
    # аутентификация
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),

    # регистрация и подтверждение email
    path('register/', views.register, name='register'),
    path('verify-email/', views.verify_email, name='verify_email'),
    path('resend-verification/', views.resend_verification, name='resend_verification'),

    # профиль
    path('profile/', views.profile, name='profile'),
]
