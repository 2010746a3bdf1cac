"""Shared fixtures: in-memory collaborators for storage and mail transport."""

from __future__ import annotations

from pathlib import Path

import pytest

from transaction_summary.errors import CollaboratorFailure
from transaction_summary.tools.mail_transport import MailTransport
from transaction_summary.tools.object_store import ObjectStore

TEMPLATE_PATH = Path(__file__).resolve().parent.parent / "templates" / "template.html"

SAMPLE_CSV = (
    b"id,date,amount,id_account\r\n"
    b"1,2023-02-01,10.0,123456789\r\n"
    b"2,2023-02-01,12.45,123456789\r\n"
    b"3,2023-03-01,-1.80,123456789\r\n"
)


class MemoryObjectStore(ObjectStore):
    def __init__(self):
        self.objects = {}

    def put(self, bucket, key, data, content_type, metadata=None):
        self.objects[(bucket, key)] = (data, content_type, metadata or {})

    def get(self, bucket, key):
        try:
            return self.objects[(bucket, key)][0]
        except KeyError as e:
            raise CollaboratorFailure("storage", f"download {bucket}/{key}", e) from e


class FailingObjectStore(MemoryObjectStore):
    def put(self, bucket, key, data, content_type, metadata=None):
        raise CollaboratorFailure("storage", f"upload {bucket}/{key}", OSError("disk full"))


class RecordingTransport(MailTransport):
    def __init__(self):
        self.sent = []

    def send(self, sender, recipients, message):
        self.sent.append((sender, list(recipients), message))


class FailingTransport(MailTransport):
    def send(self, sender, recipients, message):
        raise CollaboratorFailure("transport", "send email", OSError("connection refused"))


@pytest.fixture
def template_source() -> str:
    return TEMPLATE_PATH.read_text(encoding="utf-8")


@pytest.fixture
def object_store(template_source: str) -> MemoryObjectStore:
    store = MemoryObjectStore()
    store.put("email-templates", "template.html", template_source.encode("utf-8"), "text/html")
    return store


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()
