"""
Twilio Transport - Outbound WhatsApp messages via the Twilio REST API
=====================================================================

Thin async wrapper around ``twilio.rest.Client``. The SDK is blocking, so
calls run in the default executor to keep the event loop free.
"""

import asyncio
from dataclasses import dataclass
from functools import partial
from typing import Optional, Sequence

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from core.config import TwilioConfig
from core.exceptions import TransportDispatchError
from core.logging import get_logger, mask_address
from rules.handoff import as_whatsapp_address

logger = get_logger("services.transport")


@dataclass
class SendResult:
    """Provider's answer to a send request."""
    id: str
    status: str

    def to_dict(self):
        return {"sid": self.id, "status": self.status}


class TwilioTransport:
    """
    Sends WhatsApp messages through Twilio.

    Example:
        transport = TwilioTransport(sid, token, "+14155238886")
        result = await transport.send("+15551234567", "Hello!")
        print(result.id, result.status)
    """

    def __init__(self, account_sid: str, auth_token: str, sender: str, client: Optional[Client] = None):
        if not account_sid or not auth_token or not sender:
            raise TransportDispatchError(
                "Missing Twilio credentials. Set TWILIO_ACCOUNT_SID, "
                "TWILIO_AUTH_TOKEN, and TWILIO_WHATSAPP_NUMBER environment variables."
            )
        self.sender = as_whatsapp_address(sender)
        self._client = client or Client(account_sid, auth_token)

    @classmethod
    def from_settings(cls, twilio: TwilioConfig) -> Optional["TwilioTransport"]:
        """Build a transport, or return None when credentials are incomplete."""
        if not twilio.is_configured:
            logger.info("Twilio credentials not configured; outbound messaging disabled")
            return None
        return cls(twilio.account_sid, twilio.auth_token, twilio.whatsapp_number)

    async def send(
        self,
        to: str,
        body: str,
        media_urls: Optional[Sequence[str]] = None,
        from_: Optional[str] = None
    ) -> SendResult:
        """
        Send one message.

        Args:
            to: Recipient number, with or without the ``whatsapp:`` prefix
            body: Message text
            media_urls: Optional media attachments
            from_: Sender override, defaults to the configured number

        Returns:
            SendResult with the message sid and status

        Raises:
            TransportDispatchError: If Twilio rejects the request or the
                network call fails
        """
        target = as_whatsapp_address(to)
        params = {
            "from_": as_whatsapp_address(from_) if from_ else self.sender,
            "to": target,
            "body": body,
        }
        if media_urls:
            params["media_url"] = list(media_urls)

        loop = asyncio.get_running_loop()
        try:
            message = await loop.run_in_executor(
                None,
                partial(self._client.messages.create, **params),
            )
        except (TwilioException, OSError) as e:
            raise TransportDispatchError(
                f"Failed to send WhatsApp message: {e}",
                details={"to": mask_address(target)}
            ) from e

        logger.info(
            f"Message sent to {mask_address(target)}",
            extra={"sid": message.sid, "status": message.status}
        )
        return SendResult(id=message.sid, status=message.status)
