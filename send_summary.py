#!/usr/bin/env python3

"""
Summarize a transactions CSV and email the report, or write it to an .eml file.
"""

import argparse
import base64
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from transaction_summary.config import ReportSettings, StorageSettings
from transaction_summary.errors import SummaryError
from transaction_summary.ingestion.record_parser import read_csv_rows
from transaction_summary.monitoring.logger_config import setup_logging
from transaction_summary.service import SummaryService
from transaction_summary.tools.identifiers import new_file_identifier
from transaction_summary.tools.object_store import LocalObjectStore

load_dotenv()


def write_message(args) -> int:
    """Run the pipeline without SMTP and save the composed message."""
    storage_settings = StorageSettings.from_env()
    service = SummaryService(
        object_store=LocalObjectStore(storage_settings.root),
        transport=None,
        sender=args.sender,
        storage_settings=storage_settings,
        report_settings=ReportSettings.from_env(),
    )

    file_bytes = Path(args.file).read_bytes()
    file_identifier = new_file_identifier()

    try:
        summary = service.build_summary(read_csv_rows(file_bytes), file_identifier)
        message = service.compose_message(args.name, [args.email], summary, file_bytes, file_identifier)
    except (SummaryError, ValueError) as e:
        print(f"❌ Summary failed: {e}")
        return 1

    Path(args.output).write_bytes(message)
    print(f"✅ Message written to {args.output}")
    for line in summary:
        print(f"   {line}")
    return 0


def send_message(args) -> int:
    """Run the full request flow, including upload and SMTP delivery."""
    try:
        service = SummaryService.from_env()
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        return 1

    body = json.dumps({
        'name': args.name,
        'email': args.email,
        'file': base64.b64encode(Path(args.file).read_bytes()).decode('ascii'),
    })
    response = service.handle_request(body)

    if response['statusCode'] != 200:
        print(f"❌ {response['body']}")
        return 1

    print(f"✅ {response['body']} to {args.email}")
    return 0


def main():
    """Main entry point for sending a transaction summary."""
    parser = argparse.ArgumentParser(description='Send a transaction summary email for a CSV file')
    parser.add_argument('--file', '-f', required=True, help='Transactions CSV file')
    parser.add_argument('--name', '-n', required=True, help='Recipient name')
    parser.add_argument('--email', '-e', required=True, help='Recipient email address')
    parser.add_argument('--output', '-o', help='Write the composed message to this file instead of sending it')
    parser.add_argument('--sender', '-s', default='summary@localhost', help='Sender address (with --output)')

    args = parser.parse_args()

    setup_logging()

    if not Path(args.file).exists():
        print(f"❌ CSV file not found: {args.file}")
        sys.exit(1)

    if args.output:
        sys.exit(write_message(args))
    else:
        sys.exit(send_message(args))


if __name__ == "__main__":
    main()
