"""
Factories for the Google API clients used by the storage and recorder
adapters: Drive and Sheets for the ``google`` backend, Cloud Storage and the
Firestore REST API for the ``firebase`` backend.
"""

from __future__ import annotations

import logging

import google.auth
import google_auth_httplib2
import httplib2
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import storage
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.http import HttpRequest

from jobfair.config import Settings
from jobfair.errors import ConfigError

logger = logging.getLogger(__name__)

GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
]
FIREBASE_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def google_credentials(
    settings: Settings,
    scopes: list[str] = GOOGLE_SCOPES,
    impersonate: bool = True,
) -> service_account.Credentials:
    """
    Service-account credentials from GOOGLE_CLOUD_CREDENTIALS_BASE64.

    When GOOGLE_QUOTA_USER is set the credentials act on behalf of that
    account, so Drive usage counts against its quota.
    """
    info = settings.service_account_info()
    try:
        creds = service_account.Credentials.from_service_account_info(
            info, scopes=scopes
        )
    except ValueError as e:
        raise ConfigError(f"Invalid service account credentials: {e}") from e
    if impersonate and settings.google_quota_user:
        creds = creds.with_subject(settings.google_quota_user)
    return creds


def _authorized_http(credentials) -> google_auth_httplib2.AuthorizedHttp:
    return google_auth_httplib2.AuthorizedHttp(credentials, http=httplib2.Http())


def build_service(api: str, version: str, credentials):
    """
    Discovery client whose requests each get their own authorized transport.

    httplib2.Http is not thread-safe and the services are shared by requests
    running in the threadpool.
    """

    def build_request(http, *args, **kwargs):
        return HttpRequest(_authorized_http(credentials), *args, **kwargs)

    return build(
        api,
        version,
        http=_authorized_http(credentials),
        requestBuilder=build_request,
        cache_discovery=False,
    )


def drive_service(settings: Settings):
    return build_service("drive", "v3", google_credentials(settings))


def sheets_service(settings: Settings):
    return build_service(
        "sheets", "v4", google_credentials(settings, impersonate=False)
    )


def firebase_credentials(settings: Settings) -> tuple[object, str | None]:
    """
    Credentials and project for the Firebase backend.

    Uses the service-account blob when present, otherwise the runtime's
    application default credentials.
    """
    if settings.google_cloud_credentials_base64:
        creds = google_credentials(settings, FIREBASE_SCOPES, impersonate=False)
        return creds, settings.firebase_project_id or creds.project_id
    try:
        creds, project = google.auth.default(scopes=FIREBASE_SCOPES)
    except DefaultCredentialsError as e:
        raise ConfigError(f"No Firebase credentials available: {e}") from e
    return creds, settings.firebase_project_id or project


def firebase_bucket(settings: Settings) -> storage.Bucket:
    bucket_name = settings.require("firebase_storage_bucket")
    creds, project = firebase_credentials(settings)
    logger.info("Using Firebase Storage bucket %s", bucket_name)
    client = storage.Client(project=project, credentials=creds)
    return client.bucket(bucket_name)


def firestore_service(settings: Settings) -> tuple[object, str]:
    """Firestore v1 REST service and the project it should address."""
    creds, project = firebase_credentials(settings)
    if not project:
        raise ConfigError("Missing FIREBASE_PROJECT_ID")
    service = build_service("firestore", "v1", creds)
    return service, project
