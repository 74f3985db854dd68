from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core.notifications.drivers.database import user_group
from core.notifications.service import NotificationService


class NotificationStreamConsumer(AsyncJsonWebsocketConsumer):
    """Streams in-app notifications to the connected user.

    The database channel publishes ``notification.created`` events to the
    user's group; each one is forwarded as ``{"type": "notification", ...}``.
    """

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close(code=4001)
            return
        self.group_name = user_group(user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        unread = await database_sync_to_async(NotificationService.unread_count)(user)
        await self.send_json({"type": "welcome", "unread": unread})

    async def disconnect(self, close_code):
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content, **kwargs):
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    async def notification_created(self, event):
        await self.send_json({"type": "notification", "notification": event["notification"]})
