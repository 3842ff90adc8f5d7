"""Lazily initialised Firestore client shared by the activity log and user store."""
from __future__ import annotations

import logging
import os

import firebase_admin
from firebase_admin import firestore

logger = logging.getLogger(__name__)

PROJECT_ENV = "TASKVERSE_FIRESTORE_PROJECT"

_firestore_client = None


def get_firestore_client():
    """Return the process-wide Firestore client, creating it on first use.

    ``TASKVERSE_FIRESTORE_PROJECT`` pins the Google Cloud project; otherwise
    the default credentials decide.
    """

    global _firestore_client
    if _firestore_client is None:
        if not firebase_admin._apps:
            project = os.getenv(PROJECT_ENV)
            options = {"projectId": project} if project else None
            firebase_admin.initialize_app(options=options)
            logger.info("Initialised Firebase app (project=%s)", project or "default")
        _firestore_client = firestore.client()
    return _firestore_client
