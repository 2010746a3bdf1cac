"""
Summary service that orchestrates the entire pipeline.

A request carries the customer's name, email address and a base64-encoded
CSV file. The file is stored, summarized and mailed back to the customer
with the original CSV attached.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from transaction_summary.config import ReportSettings, SmtpSettings, StorageSettings
from transaction_summary.errors import CollaboratorFailure, NoDataForAggregate
from transaction_summary.ingestion.aggregation import AggregationEngine
from transaction_summary.ingestion.record_parser import RecordParser, read_csv_rows
from transaction_summary.monitoring.logger_config import PipelineStage, setup_logging
from transaction_summary.reporting.html_template import TemplateStore
from transaction_summary.reporting.message_composer import MailEnvelope, MessageComposer
from transaction_summary.reporting.report_renderer import ReportRenderer
from transaction_summary.tools.identifiers import format_utc_timestamp, new_file_identifier, utc_now
from transaction_summary.tools.mail_transport import MailTransport, SmtpMailTransport
from transaction_summary.tools.object_store import LocalObjectStore, ObjectStore

logger = logging.getLogger(__name__)


class SummaryRequest(BaseModel):
    name: str
    email: str
    file: str


def make_response(status_code: int, body: str) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'text/plain'},
        'body': body,
    }


class SummaryService:
    """Runs parse, aggregate, render and compose between the storage and transport collaborators."""

    def __init__(
        self,
        object_store: ObjectStore,
        transport: MailTransport,
        sender: str,
        storage_settings: Optional[StorageSettings] = None,
        report_settings: Optional[ReportSettings] = None,
    ):
        self.object_store = object_store
        self.transport = transport
        self.sender = sender
        self.storage_settings = storage_settings or StorageSettings(root='./storage')
        self.report_settings = report_settings or ReportSettings()

        self.parser = RecordParser()
        self.engine = AggregationEngine()
        self.renderer = ReportRenderer()
        self.composer = MessageComposer()
        self.template_store = TemplateStore(
            object_store,
            self.storage_settings.templates_bucket,
            self.storage_settings.template_key,
        )

    @classmethod
    def from_env(cls) -> "SummaryService":
        smtp_settings = SmtpSettings.from_env()
        storage_settings = StorageSettings.from_env()

        return cls(
            object_store=LocalObjectStore(storage_settings.root),
            transport=SmtpMailTransport(smtp_settings),
            sender=smtp_settings.sender,
            storage_settings=storage_settings,
            report_settings=ReportSettings.from_env(),
        )

    def handle_request(self, body: str) -> Dict[str, Any]:
        """Handle a JSON request body and return an HTTP-style response."""
        try:
            request = SummaryRequest.model_validate_json(body)
        except ValidationError as e:
            return self._error_response("Error to unmarshal request body", e)

        try:
            # line-wrapped base64 is accepted
            file_bytes = base64.b64decode(request.file.replace('\r', '').replace('\n', ''), validate=True)
        except binascii.Error as e:
            return self._error_response("Error to decode base64 file", e)

        file_identifier = new_file_identifier()

        try:
            rows = read_csv_rows(file_bytes)
        except ValueError as e:
            return self._error_response("Error getting data from csv", e)

        try:
            self.upload_file(file_identifier, file_bytes)
        except CollaboratorFailure as e:
            return self._error_response(f"Error to upload file {file_identifier} to storage", e)

        try:
            summary = self.build_summary(rows, file_identifier)
        except NoDataForAggregate as e:
            return self._error_response("Error getting summary for customer", e)

        try:
            message = self.compose_message(request.name, [request.email], summary, file_bytes, file_identifier)
        except (CollaboratorFailure, ValueError) as e:
            return self._error_response("Error building email", e)

        try:
            self.send_message([request.email], message, file_identifier)
        except CollaboratorFailure as e:
            return self._error_response("Error to send email", e)

        return make_response(200, "Email successfully sent")

    def upload_file(self, file_identifier: str, file_bytes: bytes) -> None:
        """Store the raw CSV under ``<id>/<id>.csv``."""
        with PipelineStage("upload_file", file_identifier, size_bytes=len(file_bytes)):
            self.object_store.put(
                self.storage_settings.transactions_bucket,
                f"{file_identifier}/{file_identifier}.csv",
                file_bytes,
                content_type='text/csv',
                metadata={'uploaded_at': format_utc_timestamp(utc_now())},
            )

    def build_summary(self, rows: Sequence[Sequence[str]], file_identifier: str = None) -> List[str]:
        """Parse rows, aggregate them and render the report lines."""
        with PipelineStage("build_summary", file_identifier, row_count=len(rows)) as stage_logger:
            transactions = self.parser.parse_rows(rows)

            if self.parser.malformed_fields:
                stage_logger.warning(
                    "malformed_fields_replaced",
                    malformed_count=len(self.parser.malformed_fields),
                )

            statistics = self.engine.summarize(transactions)
            return self.renderer.render(statistics)

    def compose_message(
        self,
        name: str,
        recipients: List[str],
        summary: List[str],
        file_bytes: bytes,
        file_identifier: str = None,
    ) -> bytes:
        """Render the HTML template and compose the MIME message."""
        with PipelineStage("compose_message", file_identifier):
            html_body = self.template_store.get_template().render(name, summary)

            envelope = MailEnvelope(
                sender=self.sender,
                recipients=recipients,
                subject=self.report_settings.subject,
                html_body=html_body,
                attachment=file_bytes,
            )
            return self.composer.compose(envelope)

    def send_message(self, recipients: List[str], message: bytes, file_identifier: str = None) -> None:
        with PipelineStage("send_message", file_identifier, recipients=recipients):
            self.transport.send(self.sender, recipients, message)

    def _error_response(self, message: str, error: Exception) -> Dict[str, Any]:
        logger.error(f"{message}: {error}")
        return make_response(500, f"{message}: {error}")


_service: Optional[SummaryService] = None


def lambda_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    """API gateway style entry point; the service is built from the environment once."""
    global _service

    if _service is None:
        setup_logging()
        _service = SummaryService.from_env()

    return _service.handle_request(event.get('body') or '')
