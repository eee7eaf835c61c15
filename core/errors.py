# core/errors.py
"""Исключения сервера CreatureRealm"""


class GatewayError(Exception):
    """Базовая ошибка прокси"""


class ConfigurationError(GatewayError):
    """Required secret is missing or empty"""


class TransportError(GatewayError):
    """Upstream could not be reached (DNS, refused connection, timeout)"""

    def __init__(self, cause: BaseException):
        self.cause = cause
        # asyncio.TimeoutError has an empty message
        reason = str(cause) or cause.__class__.__name__
        super().__init__(f"Upstream request failed: {reason}")


class MailDeliveryError(Exception):
    """Email provider rejected the message or could not be reached"""
