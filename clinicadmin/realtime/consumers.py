import json
from channels.generic.websocket import AsyncWebsocketConsumer

UPDATES_GROUP = "updates"


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes staffing changes and cache refreshes to connected admin screens."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated):
            await self.close()
            return
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))

    async def assignment_changed(self, event):
        # {"type": "assignment.changed", "doctorId": int, "actionType": "...", ...}
        await self.send(json.dumps(event))
