import os
from google.cloud import secretmanager
from google.oauth2 import service_account
from google.api_core.exceptions import NotFound

from config.config import settings
from logger import logger

SECRETS_SERVICE_ACCOUNT_KEY_FILE_PATH = os.getenv('SECRETS_SERVICE_ACCOUNT_KEY_FILE_PATH', 'secrets/secret-manager.json')

class SecretManager():

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.init()
        return cls._instance

    def init(self):
        logger.info("[SECRET_MANAGER] Initializing Google Cloud Secret Manager...")
        cred = service_account.Credentials.from_service_account_file(SECRETS_SERVICE_ACCOUNT_KEY_FILE_PATH) \
            if os.path.exists(SECRETS_SERVICE_ACCOUNT_KEY_FILE_PATH) \
            else None

        self.client = secretmanager.SecretManagerServiceClient(credentials=cred)
        logger.info("[SECRET_MANAGER] Google Cloud Secret Manager initialized successfully")

    def secret(self, secret_id, version_id="latest"):
        """
        Accesses the payload of the specified secret version.

        Args:
            secret_id (str): The ID of the secret.
            version_id (str): The version of the secret (default: "latest").

        Returns:
            str: The secret payload as a string, or None when it cannot be read.
        """
        name = f"projects/{settings.GCP.PROJECT_ID}/secrets/{secret_id}/versions/{version_id}"

        try:
            response = self.client.access_secret_version(request={"name": name})
            return response.payload.data.decode("UTF-8")
        except NotFound:
            logger.error(f"[SECRET_MANAGER] Secret {secret_id} with version {version_id} not found.")
            return None
        except Exception as e:
            logger.error(f"[SECRET_MANAGER] An error occurred reading {secret_id}: {e}")
            return None


_secret_manager_instance = None

def get_secret_manager():
    """Get Secret Manager with lazy initialization and feature flag support"""
    global _secret_manager_instance

    if not settings.FeatureFlags.ENABLE_SECRET_MANAGER:
        return None

    if _secret_manager_instance is None:
        try:
            _secret_manager_instance = SecretManager()
        except Exception as e:
            logger.exception(f"[SECRET_MANAGER] Failed to initialize SecretManager: {e}")
            return None

    return _secret_manager_instance


class LazySecretManager:
    """Resolves secrets from Secret Manager when enabled, environment variables otherwise"""

    def secret(self, secret_id, version_id="latest"):
        manager = get_secret_manager()
        if manager is not None:
            value = manager.secret(secret_id, version_id)
            if value:
                return value
            logger.warning(f"[SECRET_MANAGER] Falling back to environment variable for: {secret_id}")

        env_value = os.getenv(secret_id)
        if not env_value:
            logger.warning(f"[SECRET_MANAGER] No value found for: {secret_id}")
        return env_value

secret_mgr = LazySecretManager()
