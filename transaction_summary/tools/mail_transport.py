"""
SMTP transport for delivering composed summary emails.
"""

import smtplib
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from transaction_summary.config import SmtpSettings
from transaction_summary.errors import CollaboratorFailure

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Delivers an already-serialized message to its recipients."""

    @abstractmethod
    def send(self, sender: str, recipients: Sequence[str], message: bytes) -> None:
        """Send the message. Raises CollaboratorFailure on error."""


class SmtpMailTransport(MailTransport):
    """Sends messages over SMTP with credentials injected through SmtpSettings."""

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def send(self, sender: str, recipients: Sequence[str], message: bytes) -> None:
        try:
            with smtplib.SMTP(self.settings.server, self.settings.port) as server:
                if self.settings.use_tls:
                    server.starttls()

                server.login(self.settings.username, self.settings.password)
                server.sendmail(sender, list(recipients), message)

            logger.info(f"Email sent successfully to {', '.join(recipients)}")

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            raise CollaboratorFailure('transport', f"send email to {', '.join(recipients)}", e) from e
