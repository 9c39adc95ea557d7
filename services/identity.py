# backend/services/identity.py

import threading
from dataclasses import dataclass

from firebase_admin import auth


@dataclass(frozen=True)
class CurrentUser:
    uid: str
    display_name: str = None
    email: str = None

    def to_dict(self):
        return {"uid": self.uid, "displayName": self.display_name, "email": self.email}


class FirebaseIdentity:
    """
    Signed-in user of this companion, verified through Firebase Auth.
    """

    def __init__(self):
        self._user = None
        self._lock = threading.Lock()

    def current_user(self):
        with self._lock:
            return self._user

    def sign_in(self, id_token):
        """
        Verify a Firebase ID token and make its owner the current user.
        Raises firebase_admin auth errors on invalid tokens.
        """
        claims = auth.verify_id_token(id_token)
        record = auth.get_user(claims["uid"])
        user = CurrentUser(uid=record.uid, display_name=record.display_name, email=record.email)
        with self._lock:
            self._user = user
        print(f"[Auth] Signed in {user.email or user.uid}")
        return user

    def sign_out(self):
        with self._lock:
            user, self._user = self._user, None
        if user is None:
            return
        try:
            auth.revoke_refresh_tokens(user.uid)
        except Exception as e:
            print(f"ERROR revoking tokens for {user.uid}: {e}")
        print(f"[Auth] Signed out {user.email or user.uid}")
