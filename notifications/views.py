import logging

from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import IsStudentOrStaff
from .exceptions import NotificationNotFound, NotificationValidationError
from .serializers import NotificationSerializer
from .utils import acknowledge, fetch_unread

logger = logging.getLogger(__name__)


class UnreadNotificationListView(generics.ListAPIView):
    """Unread notifications of the requesting user, oldest first."""
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated, IsStudentOrStaff]
    pagination_class = None

    def get_queryset(self):
        return fetch_unread(self.request.user.id)


class AcknowledgeNotificationView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsStudentOrStaff]

    def post(self, request, pk):
        try:
            notification = acknowledge(pk, request.user.id, request.user.role)
        except NotificationNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotificationValidationError as e:
            logger.warning("Rejected acknowledgement of notification %s by user %s: %s",
                           pk, request.user.id, e.messages)
            return Response({'error': e.messages[0]}, status=status.HTTP_400_BAD_REQUEST)

        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)
