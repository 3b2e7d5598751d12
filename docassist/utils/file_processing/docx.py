import html
import io
import re
import zipfile

DOCUMENT_XML = "word/document.xml"
_TEXT_RUN_PATTERN = re.compile(r"<w:t(?:\s[^>]*)?>(.*?)</w:t>", re.DOTALL)


def _document_xml(data: bytes) -> str:
    buffer = io.BytesIO(data)
    if zipfile.is_zipfile(buffer):
        with zipfile.ZipFile(buffer) as archive:
            if DOCUMENT_XML not in archive.namelist():
                return ""
            return archive.read(DOCUMENT_XML).decode("utf-8", errors="replace")
    # already-flattened XML
    return data.decode("utf-8", errors="replace")


def extract_docx_text(data: bytes) -> str:
    """Join the text of every ``<w:t>`` run in the main document part with spaces."""
    runs = _TEXT_RUN_PATTERN.findall(_document_xml(data))
    return " ".join(html.unescape(run) for run in runs)
