"""Bridge between the core and the mail store, calendar, and host shell."""

from inboxflow.bridge.gmail import GmailBridge, GmailClient
from inboxflow.bridge.host import HostSignals, Notification
from inboxflow.bridge.protocol import Bridge

__all__ = [
    "Bridge",
    "GmailBridge",
    "GmailClient",
    "HostSignals",
    "Notification",
]
