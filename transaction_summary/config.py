"""
Environment-driven configuration for the summary pipeline.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class SmtpSettings(BaseModel):
    """SMTP connection settings. Credentials are only read from the environment."""

    server: str
    port: int
    username: str
    password: str
    use_tls: bool = True
    sender: str

    @classmethod
    def from_env(cls) -> "SmtpSettings":
        username = os.getenv('SMTP_USERNAME')
        password = os.getenv('SMTP_PASSWORD')

        if not all([username, password]):
            raise ValueError("SMTP_USERNAME and SMTP_PASSWORD environment variables are required")

        return cls(
            server=os.getenv('SMTP_SERVER', 'smtp.gmail.com'),
            port=int(os.getenv('SMTP_PORT', '587')),
            username=username,
            password=password,
            use_tls=os.getenv('SMTP_USE_TLS', 'true').lower() == 'true',
            sender=os.getenv('MAIL_SENDER') or username,
        )


class StorageSettings(BaseModel):
    """Object storage locations for uploaded files and email templates."""

    root: Path
    transactions_bucket: str = 'transactions'
    templates_bucket: str = 'email-templates'
    template_key: str = 'template.html'

    @classmethod
    def from_env(cls) -> "StorageSettings":
        return cls(
            root=Path(os.getenv('STORAGE_ROOT', './storage')),
            transactions_bucket=os.getenv('TRANSACTIONS_BUCKET', 'transactions'),
            templates_bucket=os.getenv('TEMPLATES_BUCKET', 'email-templates'),
            template_key=os.getenv('TEMPLATE_KEY', 'template.html'),
        )


class ReportSettings(BaseModel):
    subject: str = 'Summary from Stori'

    @classmethod
    def from_env(cls) -> "ReportSettings":
        return cls(subject=os.getenv('MAIL_SUBJECT', 'Summary from Stori'))
