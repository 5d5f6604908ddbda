# notifier.py
"""Outbound notifications through the Twilio messaging API.

One call is one delivery attempt. There is no queueing, batching or retry;
a failure is logged and reported to the caller as ``False``.
"""
import asyncio
import logging

from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from config import (
    TWILIO_ACCOUNT_SID,
    TWILIO_AUTH_TOKEN,
    TWILIO_FROM,
    DISPATCH_TIMEOUT,
)

logger = logging.getLogger(__name__)


class DispatchError(Exception):
    pass


def send_message(destination: str, body: str) -> str:
    if not (TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN):
        raise DispatchError("Twilio credentials are not configured")
    if not destination:
        raise DispatchError("No destination configured")

    client = Client(
        TWILIO_ACCOUNT_SID,
        TWILIO_AUTH_TOKEN,
        http_client=TwilioHttpClient(timeout=DISPATCH_TIMEOUT),
    )
    try:
        message = client.messages.create(body=body, from_=TWILIO_FROM, to=destination)
    except TwilioException as e:
        raise DispatchError(f"Messaging provider rejected the message: {e}") from e
    except OSError as e:
        # transport errors from the HTTP client
        raise DispatchError(f"Request to messaging provider failed: {e}") from e
    return message.sid


async def dispatch(destination: str, body: str) -> bool:
    try:
        sid = await asyncio.to_thread(send_message, destination, body)
    except DispatchError as e:
        logger.error("Error sending SMS: %s", e)
        return False
    except Exception:
        logger.exception("Unexpected error sending SMS")
        return False

    logger.info("SMS sent (sid=%s): %s", sid, body)
    return True
