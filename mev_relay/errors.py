"""Exception hierarchy for the relay."""

from __future__ import annotations


class MevRelayError(Exception):
    """Base class for every error raised by the relay."""

    label = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class ConfigError(MevRelayError):
    label = "Configuration error"


class ChannelSendError(MevRelayError):
    label = "Channel send error"


class ChannelReceiveError(MevRelayError):
    label = "Channel receive error"


class InvalidAddressError(MevRelayError):
    label = "Invalid Ethereum address"


class InvalidTxHashError(MevRelayError):
    label = "Invalid transaction hash"


class RpcError(MevRelayError):
    label = "RPC error"


class MempoolError(MevRelayError):
    label = "Mempool monitoring error"


class FlashbotsError(MevRelayError):
    label = "Flashbots error"


class EventParsingError(MevRelayError):
    label = "Event parsing error"


class MetricsError(MevRelayError):
    label = "Metrics error"


class ShutdownError(MevRelayError):
    label = "Shutdown error"


class ProtocolDetectionError(MevRelayError):
    label = "Protocol detection error"


class MessageBrokerError(MevRelayError):
    label = "Message broker error"


class HealthCheckError(MevRelayError):
    label = "Health check error"


class UnknownError(MevRelayError):
    label = "Unknown error"