from rest_framework import serializers
from .models import Notification

class NotificationSerializer(serializers.ModelSerializer):
    time_ago = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = ['id', 'type', 'read', 'user', 'assessment', 'submission',
                  'question', 'created_at', 'updated_at', 'time_ago']
        read_only_fields = fields

    def get_time_ago(self, obj):
        from django.utils import timezone
        diff = timezone.now() - obj.created_at

        if diff.days > 0:
            return f"{diff.days}d ago"
        elif diff.seconds >= 3600:
            return f"{diff.seconds // 3600}h ago"
        elif diff.seconds >= 60:
            return f"{diff.seconds // 60}m ago"
        else:
            return "Just now"
