"""Credential destinations: pinning service, local audit files, signature API."""

from .api import SignatureApiClient
from .filesystem import AuditFileStore, PublicationJournal
from .interface import AuditStore, PinningService, SignatureApi
from .pinata import PINATA_PIN_JSON_URL, PinataClient

__all__ = [
    "AuditFileStore",
    "AuditStore",
    "PINATA_PIN_JSON_URL",
    "PinataClient",
    "PublicationJournal",
    "PinningService",
    "SignatureApi",
    "SignatureApiClient",
]
