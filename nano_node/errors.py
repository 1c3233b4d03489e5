"""
NanoNode - Custom Exceptions
==============================
Exception hierarchy for wire parsing, transport and configuration errors.

Security Level: HIGH
Last Updated: 2026-10-18
Version: 1.0.0

Parse errors are always local to one message or one connection: the
transport reports them and keeps running.
"""

from typing import Any, Optional, Tuple


# ============================================================================
# BASE EXCEPTION
# ============================================================================

class NanoNodeException(Exception):
    """
    Base exception for every NanoNode error.

    Attributes:
        message (str): Error message
        code (str): Error code (e.g. "invalid_network")
        details (dict): Additional details
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Serialize exception for logging"""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"[{self.code}] {self.message} | Details: {self.details}"
        return f"[{self.code}] {self.message}"


# ============================================================================
# CONFIGURATION ERRORS
# ============================================================================

class ConfigError(NanoNodeException):
    """Invalid node configuration"""
    pass


# ============================================================================
# PARSE ERRORS (malformed wire data)
# ============================================================================

class ParseError(NanoNodeException):
    """Malformed wire data (base)"""
    pass


class InvalidMagicError(ParseError):
    """First header byte is not the protocol magic number"""
    pass


class InvalidNetworkError(ParseError):
    """Network byte is neither mainnet nor testnet"""
    pass


class InvalidTypeError(ParseError):
    """Unknown message type"""
    pass


class InvalidBlockTypeError(ParseError):
    """Unknown or non-block block type"""
    pass


class InvalidBlockLengthError(ParseError):
    """Body length does not match the fixed layout"""
    pass


class MissingFieldError(ParseError):
    """Required block field absent"""
    pass


class LengthMismatchError(ParseError):
    """Field, key or work value of the wrong byte length"""
    pass


class InvalidFieldError(ParseError):
    """Field, key or work value that is not a hex string"""
    pass


class InvalidAccountError(ParseError):
    """Account key or address malformed"""
    pass


class InvalidAddressError(ParseError):
    """Peer address not in ip:port form"""
    pass


class TooManyPeersError(ParseError):
    """More peers than keepalive slots"""
    pass


class Ipv6UnsupportedError(ParseError):
    """IPv6 literal where only IPv4-mapped addresses are supported"""
    pass


class SignatureInvalidError(ParseError):
    """Vote signature does not verify against its account"""
    pass


# ============================================================================
# NETWORK/P2P ERRORS
# ============================================================================

class InvalidMessage(NanoNodeException):
    """
    Parse failure of an inbound datagram.

    Wraps the original ParseError together with the remote endpoint and the
    raw bytes so the failure can be observed without stopping the transport.

    Attributes:
        original_error: The ParseError raised by the codec
        remote: (address, port) of the sender
        data: Raw datagram
    """

    def __init__(
        self,
        original_error: Exception,
        remote: Optional[Tuple[str, int]] = None,
        data: bytes = b''
    ):
        self.original_error = original_error
        self.remote = remote
        self.data = data

        details: dict[str, Any] = {"size": len(data)}
        if remote:
            details["remote"] = f"{remote[0]}:{remote[1]}"
        if isinstance(original_error, NanoNodeException):
            details["reason"] = original_error.code

        super().__init__(
            "invalid_message",
            code="invalid_message",
            details=details
        )


class P2PError(NanoNodeException):
    """Networking error"""
    pass


class PeerConnectionError(P2PError):
    """Connection to a peer failed"""
    pass


class PeerTimeoutError(P2PError):
    """Peer did not answer in time"""
    pass


class NodeNotStartedError(P2PError):
    """Transport used before start()"""
    pass


# ============================================================================
# EXPORT
# ============================================================================

__all__ = [
    "NanoNodeException",
    "ConfigError",
    "ParseError",
    "InvalidMagicError",
    "InvalidNetworkError",
    "InvalidTypeError",
    "InvalidBlockTypeError",
    "InvalidBlockLengthError",
    "MissingFieldError",
    "LengthMismatchError",
    "InvalidFieldError",
    "InvalidAccountError",
    "InvalidAddressError",
    "TooManyPeersError",
    "Ipv6UnsupportedError",
    "SignatureInvalidError",
    "InvalidMessage",
    "P2PError",
    "PeerConnectionError",
    "PeerTimeoutError",
    "NodeNotStartedError",
]
