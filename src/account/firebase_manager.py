from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials

from logger import logger
from config.config import settings
from gcp.secret import secret_mgr

PLACEHOLDER_KEY_MARKER = 'MIIEvAIBADANBgkqhkiG9w0BAQEFAASCBKYwggSiAgEAAoIBAQC7ZJf...'


class FirebaseManager:
    """Thin wrapper over the firebase_admin auth API"""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    def verify_id_token(self, id_token: str) -> dict:
        return auth.verify_id_token(id_token, app=self.app)

    def create_user(self, email: str, password: str, display_name: Optional[str] = None,
                    photo_url: Optional[str] = None) -> auth.UserRecord:
        kwargs = {'email': email, 'password': password}
        if display_name:
            kwargs['display_name'] = display_name
        if photo_url:
            kwargs['photo_url'] = photo_url
        return auth.create_user(app=self.app, **kwargs)

    def update_user(self, uid: str, **fields) -> auth.UserRecord:
        return auth.update_user(uid, app=self.app, **fields)

    def delete_user(self, uid: str):
        auth.delete_user(uid, app=self.app)


_firebase_instance = None


def get_firebase_manager() -> Optional[FirebaseManager]:
    """Firebase client with lazy initialization; None when disabled or not configured"""
    global _firebase_instance

    if not settings.FeatureFlags.ENABLE_FIREBASE:
        return None

    if _firebase_instance is None:
        project_id = secret_mgr.secret(settings.Secret.FIREBASE_PROJECT_ID)
        client_email = secret_mgr.secret(settings.Secret.FIREBASE_CLIENT_EMAIL)
        private_key = secret_mgr.secret(settings.Secret.FIREBASE_PRIVATE_KEY)

        if not (project_id and client_email and private_key):
            logger.warning("[FIREBASE] Firebase credentials are missing, Firebase features disabled")
            return None
        if PLACEHOLDER_KEY_MARKER in private_key:
            logger.warning("[FIREBASE] Firebase is configured with placeholder credentials, Firebase features disabled")
            return None

        try:
            cred = credentials.Certificate({
                'type': 'service_account',
                'project_id': project_id,
                'client_email': client_email,
                'private_key': private_key.replace('\\n', '\n'),
                'token_uri': 'https://oauth2.googleapis.com/token',
            })
            _firebase_instance = FirebaseManager(firebase_admin.initialize_app(cred))
            logger.info("[FIREBASE] Firebase Admin initialized")
        except (ValueError, OSError) as e:
            logger.exception(f"[FIREBASE] Failed to initialize Firebase Admin: {e}")
            return None

    return _firebase_instance
