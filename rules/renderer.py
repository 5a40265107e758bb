"""
TwiML Renderer - Turns matched responses into a webhook reply
=============================================================

Builds the messaging TwiML document returned to Twilio for an inbound
message. Rendering is pure: it never fails for a validated config, and
body text is escaped by the XML serializer so reserved characters cannot
break the document. Control characters XML 1.0 forbids are dropped before
serialization.

Example output::

    <?xml version="1.0" encoding="UTF-8"?>
    <Response>
      <Message><Body>Hi</Body><Media>https://x/a.png</Media></Message>
      <Message><Body>Bye</Body></Message>
    </Response>
"""

import re
from typing import Iterable

from twilio.twiml.messaging_response import Message, MessagingResponse

from .models import AutomationResponse

# Code points XML 1.0 does not allow in character data
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_safe(text: str) -> str:
    """Drop characters that cannot appear in an XML document."""
    return _XML_ILLEGAL.sub("", text)


def _message_element(body: str, media_urls: Iterable[str] = ()) -> Message:
    message = Message()
    body = xml_safe(body)
    if body:
        message.body(body)
    for url in media_urls:
        message.media(xml_safe(url))
    return message


def build_document(responses: Iterable[AutomationResponse], fallback_message: str) -> str:
    """
    Render responses as a TwiML ``<Response>`` document.

    Args:
        responses: Responses of the matched flow, in send order. Empty when
            nothing matched.
        fallback_message: Sent as the only message when ``responses`` is empty

    Returns:
        The XML document, including the XML declaration
    """
    twiml = MessagingResponse()
    rendered = 0

    for response in responses:
        twiml.append(_message_element(response.message, response.media_urls))
        rendered += 1

    if not rendered:
        twiml.append(_message_element(fallback_message))

    return twiml.to_xml()
