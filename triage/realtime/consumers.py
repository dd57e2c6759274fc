import json

from channels.generic.websocket import AsyncWebsocketConsumer

from triage.permissions import is_clinician
from triage.realtime.notify import ALERTS_GROUP, UPDATES_GROUP


class UpdatesConsumer(AsyncWebsocketConsumer):
    GROUP = UPDATES_GROUP

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))


class AlertsConsumer(AsyncWebsocketConsumer):
    """Clinical alerts, only for signed-in clinicians."""
    GROUP = ALERTS_GROUP

    async def connect(self):
        user = self.scope.get("user")
        if not is_clinician(user):
            await self.close(code=4003)
            return
        self.joined = True
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        if getattr(self, "joined", False):
            await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def alert_message(self, event):
        # event: {"type": "alert.message", "kind": "critical_case"|"escalation", "ts": "...", "payload": {...}}
        await self.send(json.dumps({"type": event["kind"], "ts": event["ts"], "payload": event["payload"]}))
