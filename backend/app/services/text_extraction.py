"""Default document-text extraction for content items."""

import logging
from pathlib import Path

from app.models.content_item import ContentItem

logger = logging.getLogger(__name__)

_TEXT_SUFFIXES = {".txt", ".md", ".markdown", ".csv", ".html", ".htm"}


def _read_pdf(path: Path) -> str:
    import pdfplumber

    text_parts = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
    return "\n\n".join(text_parts)


def _read_docx(path: Path) -> str:
    import docx

    document = docx.Document(path)
    return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())


def extract_text(item: ContentItem) -> str:
    """Return the plain text of a content item, or "" when none can be extracted.

    Literal ``text_content`` always wins. Otherwise the stored file is read
    according to ``content_type``. Images, video and unreadable files are
    not indexable and yield "".
    """
    if item.text_content and item.text_content.strip():
        return item.text_content

    if not item.file_path:
        return ""

    path = Path(item.file_path)
    if not path.exists():
        logger.warning("Content %s points at missing file %s", item.id, path)
        return ""

    try:
        if item.content_type == "pdf" or path.suffix.lower() == ".pdf":
            return _read_pdf(path)
        if item.content_type == "doc" and path.suffix.lower() in {".doc", ".docx"}:
            return _read_docx(path)
        if item.content_type in {"text", "doc"} or path.suffix.lower() in _TEXT_SUFFIXES:
            return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.info("Content %s is not UTF-8 text; treating as non-indexable", item.id)
        return ""
    except Exception:
        logger.exception("Text extraction failed for content %s", item.id)
        return ""

    return ""
