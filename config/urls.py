from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls), #админка

    path('users/', include('users.urls')), #регистрация, вход, профиль
    path('events/', include('events.urls')), #мероприятия и тарифы
    path('tickets/', include('tickets.urls')), #билеты
    path('favorites/', include('favorites.urls')), #избранное
    path('payments/', include('payments.urls')), #оплата и вебхук
    path('payouts/', include('payouts.urls')), #выводы средств организаторов
    path('dashboard/', include('dashboard.urls')), #сводка продаж
]

# Обслуживание медиа-файлов в режиме отладки
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
