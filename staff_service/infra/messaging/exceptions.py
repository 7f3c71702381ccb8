"""Messaging error hierarchy."""

from __future__ import annotations


class MessagingError(Exception):
    """Base class for broker-related failures."""


class BrokerConnectionError(MessagingError):
    """The connection, its channel, or the topology could not be established."""


class ChannelUnavailableError(MessagingError):
    """No open channel after ensuring the connection."""
