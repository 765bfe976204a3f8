import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import ChannelDeliveryError, ChannelNotConfiguredError

logger = logging.getLogger(__name__)


class TwilioCredentials(BaseModel):
    """Organization-scoped Twilio account."""

    account_sid: str
    auth_token: str
    phone_number: Optional[str] = None

    @classmethod
    def from_organization(cls, organization: Any) -> Optional["TwilioCredentials"]:
        """Return credentials for *organization*, or ``None`` if it has none."""
        if not (organization.twilio_account_sid and organization.twilio_auth_token):
            return None
        return cls(
            account_sid=organization.twilio_account_sid,
            auth_token=organization.twilio_auth_token,
            phone_number=organization.twilio_phone_number or None,
        )


class TwilioSmsChannel:
    """Sends SMS through the Twilio REST API with per-tenant credentials.

    The sender is the organization's configured number when present,
    otherwise the first number listed under the account's
    ``IncomingPhoneNumbers``.
    """

    def __init__(
        self,
        api_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._api_base_url: str = (api_base_url or settings.TWILIO_API_BASE_URL).rstrip(
            "/"
        )
        self._timeout: float = timeout or settings.CHANNEL_TIMEOUT_SECONDS

    def _account_url(self, account_sid: str, resource: str) -> str:
        return f"{self._api_base_url}/Accounts/{account_sid}/{resource}"

    async def _first_incoming_number(
        self, client: httpx.AsyncClient, account_sid: str
    ) -> str:
        response = await client.get(
            self._account_url(account_sid, "IncomingPhoneNumbers.json")
        )
        response.raise_for_status()
        numbers = response.json().get("incoming_phone_numbers") or []
        if not numbers:
            raise ChannelDeliveryError(
                f"No phone numbers available for Twilio account {account_sid}"
            )
        return numbers[0]["phone_number"]

    async def send(
        self,
        credentials: Optional[TwilioCredentials],
        *,
        to: str,
        body: str,
    ) -> None:
        if credentials is None:
            raise ChannelNotConfiguredError("Twilio not configured for organization")

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                auth=(credentials.account_sid, credentials.auth_token),
            ) as client:
                from_number = credentials.phone_number or await self._first_incoming_number(
                    client, credentials.account_sid
                )
                response = await client.post(
                    self._account_url(credentials.account_sid, "Messages.json"),
                    data={"From": from_number, "To": to, "Body": body},
                )
                response.raise_for_status()
        except httpx.TimeoutException:
            logger.error("Twilio request timed out sending to %s", to)
            raise ChannelDeliveryError("Twilio request timed out")
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Twilio returned %s sending to %s", exc.response.status_code, to
            )
            raise ChannelDeliveryError(f"Twilio returned {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.error("Twilio unreachable: %s", exc)
            raise ChannelDeliveryError(f"Twilio unreachable: {exc}")

        logger.debug("SMS sent to %s", to)
