import re
from typing import List

_STREAM_PATTERN = re.compile(rb"stream\r?\n(.*?)endstream", re.DOTALL)
# a literal string shown with Tj, or an array of literals shown with TJ
_TEXT_OP_PATTERN = re.compile(r"\(((?:\\.|[^\\)])*)\)\s*Tj|\[(.*?)\]\s*TJ")
_ARRAY_LITERAL_PATTERN = re.compile(r"\(((?:\\.|[^\\)])*)\)")
_ESCAPED_PAREN_PATTERN = re.compile(r"\\([()\\])")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def _unescape(literal: str) -> str:
    return _ESCAPED_PAREN_PATTERN.sub(r"\1", literal)


def extract_pdf_text(data: bytes) -> str:
    """
    Heuristic PDF text extraction.

    Scans uncompressed content streams for text-showing operators. Compressed
    streams and fonts with custom encodings yield nothing; that is expected.
    """
    parts: List[str] = []

    for stream_match in _STREAM_PATTERN.finditer(data):
        content = stream_match.group(1).decode("latin-1")
        for op in _TEXT_OP_PATTERN.finditer(content):
            if op.group(1) is not None:
                parts.append(_unescape(op.group(1)))
            else:
                literals = _ARRAY_LITERAL_PATTERN.findall(op.group(2))
                if literals:
                    parts.append("".join(_unescape(lit) for lit in literals))

    text = " ".join(parts).replace("\\n", "\n")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()
