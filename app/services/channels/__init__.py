"""Delivery channels used by the notification and follow-up dispatchers."""

from app.schemas.channel import ChannelResult
from app.services.channels.email import SendGridEmailChannel
from app.services.channels.realtime import RedisRealtimeChannel
from app.services.channels.sms import TwilioCredentials, TwilioSmsChannel

__all__ = [
    "ChannelResult",
    "RedisRealtimeChannel",
    "SendGridEmailChannel",
    "TwilioCredentials",
    "TwilioSmsChannel",
]
