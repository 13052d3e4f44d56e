"""UPS OAuth 2.0 client-credentials exchange."""

import logging
from typing import Tuple

import httpx

from ..constants import PROVIDER_UPS
from ..errors import AuthError
from ..httputil import as_dict_list, first, json_or_empty
from ..tokens.cache import TokenCache

logger = logging.getLogger(__name__)


class UpsTokenCache(TokenCache):
    """Bearer tokens for the UPS tracking API.

    UPS expects HTTP Basic client auth and reports ``expires_in`` as a
    string of seconds.
    """

    PROVIDER = PROVIDER_UPS
    TOKEN_PATH = "/security/v1/oauth/token"

    async def _exchange(self, client: httpx.AsyncClient) -> Tuple[str, int]:
        response = await client.post(
            f"{self.base_url}{self.TOKEN_PATH}",
            auth=httpx.BasicAuth(self.client_id, self.client_secret),
            headers={"Accept": "application/json"},
            data={"grant_type": "client_credentials"},
        )

        if not response.is_success:
            body = json_or_empty(response)
            errors = as_dict_list((body.get("response") or {}).get("errors"))
            error = errors[0] if errors else {}
            message = first(
                error.get("message"),
                f"UPS OAuth failed with status {response.status_code}",
            )
            code = first(error.get("code"), "AUTH_FAILED")
            logger.warning(f"UPS token exchange failed: {code} {message}")
            raise AuthError(self.PROVIDER, message, code, response.status_code)

        data = response.json()
        return data["access_token"], int(data["expires_in"])
