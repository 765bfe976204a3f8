import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ChannelDeliveryError, ChannelNotConfiguredError

logger = logging.getLogger(__name__)


class SendGridEmailChannel:
    """Sends email through the SendGrid v3 ``mail/send`` endpoint.

    The channel is considered configured when an API key is present.  A
    send on an unconfigured channel raises
    :class:`ChannelNotConfiguredError`; transport failures and non-2xx
    responses raise :class:`ChannelDeliveryError`.  No delivery receipt
    is consumed.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._api_key: Optional[str] = (
            api_key if api_key is not None else settings.SENDGRID_API_KEY
        )
        self._api_url: str = api_url or settings.SENDGRID_API_URL
        self._timeout: float = timeout or settings.CHANNEL_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def send(
        self,
        *,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ) -> None:
        if not self.is_configured:
            raise ChannelNotConfiguredError("SendGrid API key not configured")

        content = [{"type": "text/plain", "value": text}]
        if html:
            content.append({"type": "text/html", "value": html})
        payload: Dict[str, Any] = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {
                "email": from_email or settings.DEFAULT_FROM_EMAIL,
                "name": from_name or settings.DEFAULT_FROM_NAME,
            },
            "subject": subject,
            "content": content,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.error("SendGrid request timed out sending to %s", to)
            raise ChannelDeliveryError("SendGrid request timed out")
        except httpx.HTTPStatusError as exc:
            logger.error(
                "SendGrid returned %s sending to %s", exc.response.status_code, to
            )
            raise ChannelDeliveryError(
                f"SendGrid returned {exc.response.status_code}"
            )
        except httpx.HTTPError as exc:
            logger.error("SendGrid unreachable: %s", exc)
            raise ChannelDeliveryError(f"SendGrid unreachable: {exc}")

        logger.debug("Email sent to %s", to)
