"""Document extraction and reinsertion utilities."""

from __future__ import annotations

import copy
import io
import logging
import zipfile
from typing import List

from docx.oxml import parse_xml
from docx.oxml.ns import qn
from lxml import etree

from .errors import InvalidPackageError, MalformedContentError
from .structures import TextSegment


logger = logging.getLogger(__name__)

DOCUMENT_PART = "word/document.xml"
FONT_ATTRIBUTES = ("w:ascii", "w:hAnsi", "w:eastAsia", "w:cs")
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


class DocxPackage:
    """An opened .docx archive with its main document part parsed.

    Only ``word/document.xml`` is touched. Every other archive entry is copied
    through unchanged when the package is written back.
    """

    def __init__(self, archive: zipfile.ZipFile, document) -> None:
        self.archive = archive
        self.document = document
        self.segments: List[TextSegment] = []

    @classmethod
    def from_bytes(cls, data: bytes) -> "DocxPackage":
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise InvalidPackageError(
                "Invalid .docx: the file is not a ZIP package."
            ) from exc

        if DOCUMENT_PART not in archive.namelist():
            raise InvalidPackageError(
                f"Invalid .docx: the package has no {DOCUMENT_PART} part."
            )

        try:
            document = parse_xml(archive.read(DOCUMENT_PART))
        except etree.XMLSyntaxError as exc:
            raise MalformedContentError(
                f"Could not parse {DOCUMENT_PART}: {exc}"
            ) from exc

        return cls(archive, document)

    def extract_segments(self) -> List[TextSegment]:
        """Collect non-blank ``<w:t>`` nodes in document order."""

        segments: List[TextSegment] = []
        for node in self.document.iter(qn("w:t")):
            text = node.text
            if not text or not text.strip():
                continue
            segments.append(
                TextSegment(index=len(segments), anchor=node, original_text=text)
            )
        self.segments = segments
        return segments

    def apply_uniform_font(self, font_name: str) -> int:
        """Force ``font_name`` on every run and return the number of runs."""

        runs = list(self.document.iter(qn("w:r")))
        for run in runs:
            r_pr = run.get_or_add_rPr()
            r_fonts = r_pr.get_or_add_rFonts()
            for attribute in FONT_ATTRIBUTES:
                r_fonts.set(qn(attribute), font_name)
        logger.debug("Applied font %r to %d runs.", font_name, len(runs))
        return len(runs)

    def write_segment(self, segment: TextSegment, translated: str) -> None:
        """Write translated text into the segment's anchor node."""

        segment.write(translated)
        if translated != translated.strip():
            segment.anchor.set(XML_SPACE, "preserve")

    def serialize_document(self) -> bytes:
        return etree.tostring(self.document, encoding="UTF-8", standalone=True)

    def repackage(self) -> bytes:
        """Return a new archive with the rewritten main document part."""

        buffer = io.BytesIO()
        document_xml = self.serialize_document()
        with zipfile.ZipFile(buffer, "w") as output:
            for info in self.archive.infolist():
                if info.filename == DOCUMENT_PART:
                    output.writestr(copy.copy(info), document_xml)
                else:
                    output.writestr(copy.copy(info), self.archive.read(info))
        return buffer.getvalue()

    def close(self) -> None:
        self.archive.close()
