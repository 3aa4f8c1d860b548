import logging
import re

import requests
from google.auth.transport.requests import AuthorizedSession

from services.exceptions import TransientAPIError, ValidationError
from services.google_sheets_service import load_credentials

logger = logging.getLogger(__name__)

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]

_PATH_ID_RE = re.compile(r"/d/([a-zA-Z0-9_-]+)")
_QUERY_ID_RE = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")
_BARE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def file_id_from_ref(ref: str) -> str:
    """
    Accept a bare Drive file id or a share URL and return the file id.

    >>> file_id_from_ref("https://drive.google.com/file/d/abc123/view")
    'abc123'
    """
    ref = (ref or "").strip()
    for pattern in (_PATH_ID_RE, _QUERY_ID_RE):
        m = pattern.search(ref)
        if m:
            return m.group(1)
    if _BARE_ID_RE.match(ref):
        return ref
    raise ValidationError(f"not a Drive file reference: {ref!r}")


class DriveAssetStore:
    """Deletes uploaded medicine pictures from Google Drive."""

    def __init__(self, json_file: str = None, session: AuthorizedSession = None, timeout: float = 30.0):
        if session is None:
            session = AuthorizedSession(load_credentials(json_file, scopes=DRIVE_SCOPES))
        self._session = session
        self._timeout = timeout

    def delete(self, ref: str) -> bool:
        """
        Delete one object.

        :return: True if it was deleted, False if it was already gone.
        :raises TransientAPIError: on any other HTTP or network failure.
        """
        file_id = file_id_from_ref(ref)
        try:
            resp = self._session.delete(
                f"{DRIVE_FILES_URL}/{file_id}",
                params={"supportsAllDrives": "true"},
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            raise TransientAPIError(f"network error deleting {file_id}: {e}")

        if resp.status_code == 404:
            logger.info(f"Drive file {file_id} already deleted")
            return False
        if resp.status_code >= 400:
            raise TransientAPIError(f"Drive delete of {file_id} failed (status {resp.status_code})")
        return True
