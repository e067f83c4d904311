"""OAuth2 bearer credentials for the FCM HTTP v1 API."""

import asyncio
import logging
from pathlib import Path

import firebase_admin
from firebase_admin import credentials
from google.auth import exceptions as google_auth_exceptions

from petnotify.config import Settings
from petnotify.errors import ConfigurationError, TransientDeliveryError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "petnotify-fcm"


class FirebaseCredentialProvider:
    """Signs FCM requests with a service-account identity.

    Nothing is read from disk until the first token is requested, so a missing
    service account only disables FCM delivery instead of failing startup.
    """

    def __init__(self, settings: Settings, app_name: str = FIREBASE_APP_NAME) -> None:
        self._settings = settings
        self._app_name = app_name
        self._app: firebase_admin.App | None = None

    def _service_account_path(self) -> Path:
        configured = self._settings.firebase_service_account_path
        if configured:
            path = Path(configured)
        else:
            path = Path(self._settings.firebase_default_credentials_path)
        if not path.is_file():
            raise ConfigurationError(
                f"Firebase service account not found at {path}. "
                "Set FIREBASE_SERVICE_ACCOUNT_PATH or place the JSON in credentials/."
            )
        return path

    def initialize(self) -> firebase_admin.App:
        """Initialize the Firebase app once; later calls return the same instance."""
        if self._app is not None:
            return self._app

        try:
            self._app = firebase_admin.get_app(self._app_name)
            return self._app
        except ValueError:
            pass

        path = self._service_account_path()
        try:
            cred = credentials.Certificate(str(path))
        except (ValueError, OSError) as e:
            raise ConfigurationError(f"Invalid Firebase service account file {path}: {e}") from e

        options = {"projectId": self._settings.firebase_project_id} if self._settings.firebase_project_id else None
        self._app = firebase_admin.initialize_app(cred, options, name=self._app_name)
        logger.info("Firebase credentials loaded from %s", path)
        return self._app

    @property
    def project_id(self) -> str:
        if self._settings.firebase_project_id:
            return self._settings.firebase_project_id
        project_id = self.initialize().project_id
        if not project_id:
            raise ConfigurationError("Firebase project id is not configured")
        return project_id

    async def get_access_token(self) -> str:
        """Return a bearer token for a single outbound request.

        Callers ask again for every send; expiry and refresh are handled by the
        underlying google-auth credential.
        """
        app = self.initialize()
        loop = asyncio.get_running_loop()
        try:
            token_info = await asyncio.wait_for(
                loop.run_in_executor(None, app.credential.get_access_token),
                timeout=self._settings.push_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TransientDeliveryError(
                f"OAuth token refresh timed out after {self._settings.push_timeout_seconds}s"
            ) from e
        except google_auth_exceptions.TransportError as e:
            raise TransientDeliveryError(f"Could not reach the OAuth token endpoint: {e}") from e
        except google_auth_exceptions.RefreshError as e:
            raise ConfigurationError(f"Firebase credentials rejected: {e}") from e

        if not token_info or not token_info.access_token:
            raise ConfigurationError("Firebase returned an empty access token")
        return token_info.access_token
