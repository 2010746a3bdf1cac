import base64
import email
import json

import pytest

from conftest import SAMPLE_CSV, FailingObjectStore, FailingTransport, MemoryObjectStore
from transaction_summary import service as service_module
from transaction_summary.service import SummaryService


def _body(file_bytes=SAMPLE_CSV, **overrides):
    payload = {
        "name": "Ana",
        "email": "ana@example.com",
        "file": base64.b64encode(file_bytes).decode("ascii"),
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def summary_service(object_store, transport):
    return SummaryService(object_store=object_store, transport=transport, sender="reports@example.com")


def test_request_sends_summary_email(summary_service, object_store, transport):
    response = summary_service.handle_request(_body())

    assert response == {
        "statusCode": 200,
        "headers": {"Content-Type": "text/plain"},
        "body": "Email successfully sent",
    }

    sender, recipients, raw = transport.sent[0]
    assert sender == "reports@example.com"
    assert recipients == ["ana@example.com"]

    message = email.message_from_bytes(raw)
    assert message["Subject"] == "Summary from Stori"
    html_part, attachment = message.get_payload()
    html = html_part.get_payload(decode=True).decode("utf-8")
    assert "Hello Ana," in html
    for line in [
        "Total balance is: 20.65",
        "Number of transactions in February: 2",
        "Number of transactions in March: 1",
        "Average debit amount: -1.80",
        "Average credit amount: 11.22",
    ]:
        assert f"<p>{line}</p>" in html
    assert attachment.get_payload(decode=True) == SAMPLE_CSV


def test_request_uploads_raw_file(summary_service, object_store):
    summary_service.handle_request(_body())

    uploads = [key for key in object_store.objects if key[0] == "transactions"]
    assert len(uploads) == 1
    bucket, key = uploads[0]
    identifier = key.split("/")[0]
    assert key == f"{identifier}/{identifier}.csv"

    data, content_type, metadata = object_store.objects[(bucket, key)]
    assert data == SAMPLE_CSV
    assert content_type == "text/csv"
    assert metadata["uploaded_at"].endswith("Z")


def test_build_summary_lines(summary_service):
    rows = [
        ["id", "date", "amount"],
        ["1", "2023-02-01", "10.0"],
        ["2", "2023-02-01", "12.45"],
        ["3", "2023-03-01", "-1.80"],
    ]

    assert summary_service.build_summary(rows) == [
        "Total balance is: 20.65",
        "Number of transactions in February: 2",
        "Number of transactions in March: 1",
        "Average debit amount: -1.80",
        "Average credit amount: 11.22",
    ]


def test_malformed_fields_do_not_fail_the_request(summary_service, transport):
    csv_bytes = b"id,date,amount\n1,not-a-date,5\n2,2023-01-04,oops\n3,2023-01-05,-2\n"

    response = summary_service.handle_request(_body(csv_bytes))

    assert response["statusCode"] == 200
    html = email.message_from_bytes(transport.sent[0][2]).get_payload()[0].get_payload(decode=True).decode()
    assert "Number of transactions in January: 3" in html
    assert "Total balance is: 3.00" in html


def test_invalid_json_body(summary_service, transport):
    response = summary_service.handle_request("{not json")

    assert response["statusCode"] == 500
    assert response["body"].startswith("Error to unmarshal request body")
    assert transport.sent == []


def test_invalid_base64_file(summary_service):
    response = summary_service.handle_request(_body(file="***"))

    assert response["statusCode"] == 500
    assert response["body"].startswith("Error to decode base64 file")


def test_csv_that_is_not_utf8(summary_service):
    response = summary_service.handle_request(_body(b"\xff\xfe\x00"))

    assert response["statusCode"] == 500
    assert response["body"].startswith("Error getting data from csv")


def test_missing_debits_fail_the_summary(summary_service, transport):
    response = summary_service.handle_request(_body(b"id,date,amount\n1,2023-01-01,5\n"))

    assert response["statusCode"] == 500
    assert response["body"] == "Error getting summary for customer: No debit transactions to average"
    assert transport.sent == []


def test_upload_failure_is_reported(template_source, transport):
    store = FailingObjectStore()
    summary_service = SummaryService(object_store=store, transport=transport, sender="reports@example.com")

    response = summary_service.handle_request(_body())

    assert response["statusCode"] == 500
    assert "to storage: storage failed to upload transactions/" in response["body"]
    assert transport.sent == []


def test_missing_template_is_reported(transport):
    summary_service = SummaryService(object_store=MemoryObjectStore(), transport=transport, sender="r@example.com")

    response = summary_service.handle_request(_body())

    assert response["statusCode"] == 500
    assert response["body"].startswith("Error building email: storage failed to download email-templates/template.html")


def test_transport_failure_is_reported(object_store):
    summary_service = SummaryService(object_store=object_store, transport=FailingTransport(), sender="r@example.com")

    response = summary_service.handle_request(_body())

    assert response["statusCode"] == 500
    assert response["body"] == "Error to send email: transport failed to send email: connection refused"


def test_lambda_handler_builds_service_from_env(monkeypatch, tmp_path, template_source, transport):
    templates = tmp_path / "email-templates"
    templates.mkdir()
    (templates / "template.html").write_text(template_source, encoding="utf-8")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path))
    monkeypatch.setenv("SMTP_USERNAME", "reports@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "secret")
    monkeypatch.delenv("MAIL_SENDER", raising=False)
    monkeypatch.setattr(service_module, "_service", None)
    monkeypatch.setattr(service_module, "SmtpMailTransport", lambda settings: transport)
    logging_calls = []
    monkeypatch.setattr(service_module, "setup_logging", lambda: logging_calls.append(True))

    response = service_module.lambda_handler({"body": _body()})

    assert response["statusCode"] == 200
    assert transport.sent[0][0] == "reports@example.com"
    assert len(list((tmp_path / "transactions").glob("*/*.csv"))) == 1
    assert logging_calls == [True]


def test_large_amounts_are_summarized(summary_service, transport):
    csv_bytes = b"id,date,amount\n1,2023-01-01,1E+27\n2,2023-01-02,-1\n"

    response = summary_service.handle_request(_body(csv_bytes))

    assert response["statusCode"] == 200
    html = email.message_from_bytes(transport.sent[0][2]).get_payload()[0].get_payload(decode=True).decode()
    assert "Average credit amount: 1000000000000000000000000000.00" in html
    assert "Average debit amount: -1.00" in html


def test_line_wrapped_base64_file_is_accepted(summary_service, transport):
    encoded = base64.b64encode(SAMPLE_CSV).decode("ascii")
    wrapped = "\r\n".join(encoded[i:i + 20] for i in range(0, len(encoded), 20))

    response = summary_service.handle_request(_body(file=wrapped))

    assert response["statusCode"] == 200
    attachment = email.message_from_bytes(transport.sent[0][2]).get_payload()[1]
    assert attachment.get_payload(decode=True) == SAMPLE_CSV


def test_dates_in_other_formats_count_toward_january(summary_service, transport):
    csv_bytes = b"id,date,amount\n1,2023-3-1,5\n2,2023-03-01,-2\n"

    response = summary_service.handle_request(_body(csv_bytes))

    assert response["statusCode"] == 200
    html = email.message_from_bytes(transport.sent[0][2]).get_payload()[0].get_payload(decode=True).decode()
    assert "Number of transactions in January: 1" in html
    assert "Number of transactions in March: 1" in html
