from __future__ import annotations

import io
import zipfile
from types import SimpleNamespace
from typing import Any, List

import docx
import pytest

from docxpolyglot.providers import BackendSettings, TranslationBackend

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"

CONTENT_TYPES = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
    '<Default Extension="rels" '
    'ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
    '<Default Extension="xml" ContentType="application/xml"/>'
    '<Default Extension="png" ContentType="image/png"/>'
    '<Override PartName="/word/document.xml" ContentType="application/'
    'vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>'
    "</Types>"
)

PACKAGE_RELS = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
    '<Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/'
    '2006/relationships/officeDocument" Target="word/document.xml"/>'
    "</Relationships>"
)

IMAGE_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256))


def document_xml(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>{body}</w:body></w:document>'
    )


def build_package(body: str | None, *, document: str | None = None) -> bytes:
    """Build a minimal .docx archive; ``body=None`` omits the document part."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", CONTENT_TYPES)
        archive.writestr("_rels/.rels", PACKAGE_RELS)
        if document is not None:
            archive.writestr("word/document.xml", document)
        elif body is not None:
            archive.writestr("word/document.xml", document_xml(body))
        archive.writestr("word/media/image1.png", IMAGE_BYTES)
    return buffer.getvalue()


def paragraph(*runs: str) -> str:
    parts = "".join(f"<w:r><w:t xml:space=\"preserve\">{text}</w:t></w:r>" for text in runs)
    return f"<w:p>{parts}</w:p>"


def python_docx_bytes(*paragraphs: str) -> bytes:
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class ScriptedBackend(TranslationBackend):
    """Backend whose responses are produced by a callable, recording each call."""

    name = "scripted"

    def __init__(self, responder=None, *, tokens: int = 7) -> None:
        super().__init__(BackendSettings(provider="scripted", model_id="scripted"))
        self.responder = responder or (lambda texts: [f"<{text}>" for text in texts])
        self.tokens = tokens
        self.calls: List[List[str]] = []

    def _request(self, texts: List[str], prompt: str) -> tuple[Any, int]:
        self.calls.append(list(texts))
        return self.responder(texts), self.tokens

    def _ping(self) -> str | None:
        return "OK"


class FakeChatClient:
    """Stands in for ``openai.OpenAI`` with queued replies."""

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeGenAIClient:
    """Stands in for ``google.genai.Client`` with queued replies."""

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.calls: List[dict] = []
        self.models = SimpleNamespace(generate_content=self._generate)

    def _generate(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def chat_reply(content: str | None, *, tokens: int = 0, reasoning: str | None = None) -> Any:
    message = SimpleNamespace(content=content, reasoning_content=reasoning)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message)],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def genai_reply(text: str | None, *, tokens: int = 0, thought: str | None = None) -> Any:
    parts = []
    if thought:
        parts.append(SimpleNamespace(text=thought, thought=True))
    parts.append(SimpleNamespace(text=text, thought=False))
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))],
        usage_metadata=SimpleNamespace(total_token_count=tokens),
    )


@pytest.fixture
def scripted_backend() -> ScriptedBackend:
    return ScriptedBackend()
