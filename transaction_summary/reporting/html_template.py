"""
HTML email templates with a recipient name and summary lines.
"""

import html
import logging
from string import Template
from typing import Sequence

from transaction_summary.errors import CollaboratorFailure
from transaction_summary.tools.object_store import ObjectStore

logger = logging.getLogger(__name__)


class HtmlTemplate:
    """Template using ``$name`` and ``$summary`` placeholders.

    Each summary line is rendered as its own paragraph. All substituted values
    are HTML-escaped.
    """

    def __init__(self, source: str):
        self.source = source

    def render(self, name: str, lines: Sequence[str]) -> str:
        summary = "\n".join(f"<p>{html.escape(line)}</p>" for line in lines)

        try:
            return Template(self.source).substitute(
                name=html.escape(name),
                summary=summary,
            )
        except (KeyError, ValueError) as e:
            raise CollaboratorFailure('template', 'render template', e) from e


class TemplateStore:
    """Fetches HTML templates from an object store bucket."""

    def __init__(self, object_store: ObjectStore, bucket: str, key: str = 'template.html'):
        self.object_store = object_store
        self.bucket = bucket
        self.key = key

    def get_template(self) -> HtmlTemplate:
        content = self.object_store.get(self.bucket, self.key)

        try:
            source = content.decode('utf-8')
        except UnicodeDecodeError as e:
            raise CollaboratorFailure('template', f"decode {self.bucket}/{self.key}", e) from e

        logger.info(f"Loaded template {self.bucket}/{self.key}")
        return HtmlTemplate(source)
