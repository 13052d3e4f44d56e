"""USPS OAuth 2.0 client-credentials exchange."""

import logging
from typing import Tuple

import httpx

from ..constants import PROVIDER_USPS
from ..errors import AuthError
from ..httputil import first, json_or_empty
from ..tokens.cache import TokenCache

logger = logging.getLogger(__name__)


class UspsTokenCache(TokenCache):
    """Bearer tokens for the USPS v3 APIs. Credentials travel in the form body."""

    PROVIDER = PROVIDER_USPS
    TOKEN_PATH = "/oauth2/v3/token"

    async def _exchange(self, client: httpx.AsyncClient) -> Tuple[str, int]:
        response = await client.post(
            f"{self.base_url}{self.TOKEN_PATH}",
            headers={"Accept": "application/json"},
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if not response.is_success:
            body = json_or_empty(response)
            error = body.get("error")
            error_obj = error if isinstance(error, dict) else {}
            api_error = (body.get("apiError") or {}).get("error") or {}
            message = first(
                body.get("error_description"),
                error_obj.get("message"),
                api_error.get("message"),
                f"USPS OAuth failed with status {response.status_code}",
            )
            code = first(
                error if isinstance(error, str) else None,
                error_obj.get("code"),
                api_error.get("code"),
                "AUTH_FAILED",
            )
            logger.warning(f"USPS token exchange failed: {code} {message}")
            raise AuthError(self.PROVIDER, message, code, response.status_code)

        data = response.json()
        return data["access_token"], int(data["expires_in"])
