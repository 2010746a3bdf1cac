"""
MIME multipart/mixed message composition for summary emails.
"""

import base64
import logging
from email.header import Header
from email.utils import formataddr, parseaddr
from typing import List, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

CRLF = b'\r\n'
BOUNDARY = 'transaction-summary-boundary-779'
ATTACHMENT_FILENAME = 'transactions.csv'
BASE64_LINE_LENGTH = 76
ADDRESS_HEADERS = ('From', 'To')


class MessagePart(BaseModel):
    """A single MIME part: ordered headers plus an already-encoded body."""

    model_config = ConfigDict(frozen=True)

    headers: List[Tuple[str, str]]
    body: bytes


class MailEnvelope(BaseModel):
    """Everything needed to serialize one summary email."""

    model_config = ConfigDict(frozen=True)

    sender: str
    recipients: List[str]
    subject: str
    html_body: str
    attachment: bytes

    @field_validator('recipients')
    @classmethod
    def validate_recipients(cls, v):
        if not v:
            raise ValueError('At least one recipient is required')
        return v


class MimeMessageBuilder:
    """Serializes headers and parts into a multipart/mixed byte stream."""

    def __init__(self, boundary: str = BOUNDARY):
        self.boundary = boundary
        self.headers: List[Tuple[str, str]] = []
        self.parts: List[MessagePart] = []

    def add_header(self, name: str, value: str) -> "MimeMessageBuilder":
        self.headers.append((name, value))
        return self

    def add_part(self, part: MessagePart) -> "MimeMessageBuilder":
        if f"--{self.boundary}".encode('utf-8') in part.body:
            raise ValueError(f"Part body contains the boundary token {self.boundary}")
        self.parts.append(part)
        return self

    def build(self) -> bytes:
        delimiter = f"--{self.boundary}".encode('utf-8')
        lines = [self._header_line(name, value) for name, value in self.headers]
        lines.append(self._header_line('MIME-Version', '1.0'))
        lines.append(self._header_line(
            'Content-Type', f"multipart/mixed; boundary={self.boundary}"
        ))
        lines.append(b'')

        for part in self.parts:
            lines.append(delimiter)
            lines.extend(self._header_line(name, value) for name, value in part.headers)
            lines.append(b'')
            lines.append(part.body)

        lines.append(delimiter + b'--')
        lines.append(b'')
        return CRLF.join(lines)

    @staticmethod
    def _header_line(name: str, value: str) -> bytes:
        if '\r' in value or '\n' in value:
            raise ValueError(f"Header {name} must not contain line breaks")
        return f"{name}: {encode_header_value(name, value)}".encode('ascii')


def encode_header_value(name: str, value: str) -> str:
    """RFC 2047-encode non-ASCII header text. Addresses keep their ASCII mailbox part."""
    if value.isascii():
        return value

    if name in ADDRESS_HEADERS:
        return ';'.join(formataddr(parseaddr(address), charset='utf-8') for address in value.split(';'))

    return Header(value, 'utf-8', header_name=name).encode(linesep='\r\n')


def encode_base64_lines(data: bytes) -> bytes:
    """Base64-encode data, wrapped at 76 characters per line."""
    encoded = base64.b64encode(data)
    return CRLF.join(
        encoded[i:i + BASE64_LINE_LENGTH]
        for i in range(0, len(encoded), BASE64_LINE_LENGTH)
    )


class MessageComposer:
    """Builds the summary email: an HTML body part and a base64 CSV attachment."""

    def __init__(self, boundary: str = BOUNDARY):
        self.boundary = boundary

    def build_parts(self, envelope: MailEnvelope) -> List[MessagePart]:
        html_part = MessagePart(
            headers=[
                ('Content-Type', 'text/html; charset="UTF-8"'),
                ('Content-Transfer-Encoding', '8bit'),
            ],
            body=envelope.html_body.encode('utf-8'),
        )
        attachment_part = MessagePart(
            headers=[
                ('Content-Type', 'text/plain; charset="utf-8"'),
                ('Content-Transfer-Encoding', 'base64'),
                ('Content-Disposition', f"attachment; filename={ATTACHMENT_FILENAME}"),
                ('Content-ID', f"<{ATTACHMENT_FILENAME}>"),
            ],
            body=encode_base64_lines(envelope.attachment),
        )
        return [html_part, attachment_part]

    def compose(self, envelope: MailEnvelope) -> bytes:
        builder = MimeMessageBuilder(self.boundary)
        builder.add_header('From', envelope.sender)
        builder.add_header('To', ';'.join(envelope.recipients))
        builder.add_header('Subject', envelope.subject)

        for part in self.build_parts(envelope):
            builder.add_part(part)

        message = builder.build()
        logger.info(f"Composed {len(message)} byte message for {len(envelope.recipients)} recipients")
        return message
