from django.urls import path
from . import views

urlpatterns = [
    path('unread/', views.UnreadNotificationListView.as_view(), name='notification-unread'),
    path('<int:pk>/acknowledge/', views.AcknowledgeNotificationView.as_view(), name='notification-acknowledge'),
]
