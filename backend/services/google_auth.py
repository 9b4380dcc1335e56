# services/google_auth.py
# Service-account credentials shared by the Sheets and Calendar wrappers.
# Tokens are refreshed lazily, only when expired or close to it.

import logging
import threading
from typing import Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleRequest
from google.oauth2 import service_account

from services.errors import IntegrationError

logger = logging.getLogger(__name__)


class GoogleServiceAuth:
    """
    Builds ``Authorization: Bearer`` headers from a service-account key file.

    :param credentials_path: path to the service-account JSON key
    :type credentials_path: Optional[str]
    :param scopes: OAuth scopes requested for the token
    :type scopes: List[str]
    """

    def __init__(self, credentials_path: Optional[str], scopes: List[str]):
        self.credentials_path = credentials_path
        self.scopes = scopes
        self._credentials = None
        self._lock = threading.Lock()

    def _load(self):
        if not self.credentials_path:
            raise IntegrationError("Credenciais do Google não configuradas.")
        try:
            return service_account.Credentials.from_service_account_file(
                self.credentials_path, scopes=self.scopes
            )
        except (OSError, ValueError) as e:
            logger.error("[GoogleAuth] cannot load key file %s | %s", self.credentials_path, e)
            raise IntegrationError("Credenciais do Google inválidas.") from e

    def auth_header(self) -> Dict[str, str]:
        """
        Return a bearer header, refreshing the access token when it is no longer valid.

        :return: {"Authorization": "Bearer <access_token>"}
        :rtype: Dict[str, str]
        :raises IntegrationError: key file missing/unreadable or token refresh failed
        """

        with self._lock:
            if self._credentials is None:
                self._credentials = self._load()
            creds = self._credentials
            if not creds.valid:
                try:
                    creds.refresh(GoogleRequest())
                except GoogleAuthError as e:
                    logger.error("[GoogleAuth] token refresh failed | %s", e)
                    raise IntegrationError("Falha ao autenticar no Google.") from e
            return {"Authorization": f"Bearer {creds.token}"}
