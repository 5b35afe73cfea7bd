from __future__ import annotations

import logging
import re
from html.entities import name2codepoint
from typing import Optional, Union

from lxml import etree

logger = logging.getLogger(__name__)

_RE_XML_DECL_ENCODING = re.compile(
    r'(<\?xml[^>]*encoding=["\'])([^"\']+)(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_XML_DECL_ENCODING_BYTES = re.compile(
    rb'^\s*<\?xml[^>]*encoding=["\']([\w.\-:]+)["\'][^>]*\?>', re.IGNORECASE
)
_RE_DOUBLE_XML_DECL_BYTES = re.compile(rb"<\?xml\?xml\s+", re.IGNORECASE)
_RE_DOUBLE_CLOSE_BYTES = re.compile(rb"\?\?>\s*")
_RE_UNQUOTED_ATTR_BYTES = re.compile(rb'(\s+[\w:]+)=([^\s>"\']+)')
_RE_UTF16_ENCODING_BYTES = re.compile(
    rb'(<\?xml[^>]*encoding=["\'])utf-16(-le|-be)?(["\'][^>]*\?>)', re.IGNORECASE
)
_RE_NAMED_ENTITY_BYTES = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")
_RE_STRAY_AMPERSAND_BYTES = re.compile(
    rb"&(?!#\d+;|#[xX][0-9a-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)"
)
_XML_ENTITIES = frozenset([b"amp", b"lt", b"gt", b"quot", b"apos"])

_SNIFF_TABLE = {
    b"Lo\xa7\x94": "ebcdic-cp-us",
    b"<?xm": "utf-8",
}

_STRICT_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=False,
    collect_ids=False,
    resolve_entities=False,
    strip_cdata=False,
    no_network=True,
)
_RECOVER_XML_PARSER = etree.XMLParser(
    ns_clean=True,
    recover=True,
    collect_ids=False,
    resolve_entities=False,
    strip_cdata=False,
    no_network=True,
)
_HTML_PARSER = etree.HTMLParser(recover=True, no_network=True)


def sniff_encoding(content: bytes) -> str:
    """Detect encoding from the BOM, the XML declaration or the first bytes.

    Returns 'utf-8' when nothing conclusive is found.
    """
    if content.startswith(b"\xef\xbb\xbf"):
        return "utf-8"
    if content.startswith((b"\xff\xfe", b"\xfe\xff")):
        return "utf-16"

    encoding_match = _RE_XML_DECL_ENCODING_BYTES.match(content[:2000])
    if encoding_match:
        return encoding_match.group(1).decode("ascii", errors="replace").lower()

    sniffed = _SNIFF_TABLE.get(content[:4])
    if sniffed is not None:
        return sniffed
    if content.startswith((b"<\x00?\x00", b"<\x00r\x00", b"<\x00f\x00")):
        return "utf-16-le"
    if content.startswith((b"\x00<\x00?", b"\x00<\x00r", b"\x00<\x00f")):
        return "utf-16-be"
    return "utf-8"


def decode_feed_data(data: Union[str, bytes, None], encoding: str) -> Optional[str]:
    """Decode raw feed data, assuming UTF-8 when ``encoding`` is unusable."""
    if data is None:
        return None
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        text = data.decode(encoding)
    except (LookupError, UnicodeDecodeError) as e:
        logger.debug("Decoding as %s failed (%s), assuming utf-8", encoding, e)
        text = data.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")


def _ensure_utf8_xml_declaration(content: str) -> str:
    """Make the XML declaration's encoding match the UTF-8 bytes we emit."""
    if not content.lstrip().startswith("<?xml"):
        return content
    return _RE_XML_DECL_ENCODING.sub(r"\1utf-8\3", content, count=1)


def _clean_feed_bytes(content: bytes) -> bytes:
    """Drop junk in front of the XML document, if there is any."""
    stripped_content = content.lstrip()
    preview_lower = stripped_content[:2000].lower()
    if preview_lower.startswith((b"<?xml", b"<rss", b"<feed", b"<rdf", b"<channel")):
        return stripped_content

    search_chunk = content[:8192].lower()
    earliest = -1
    for pattern in (b"<?xml", b"<rss", b"<feed", b"<rdf:rdf", b"<channel"):
        idx = search_chunk.find(pattern)
        if idx != -1 and (earliest == -1 or idx < earliest):
            earliest = idx
    if earliest != -1:
        return content[earliest:]
    return stripped_content


def _fix_malformed_xml_bytes(content: bytes) -> bytes:
    header = content[:2048]
    tail = content[2048:]

    header = _RE_DOUBLE_XML_DECL_BYTES.sub(b"<?xml ", header)
    header = _RE_DOUBLE_CLOSE_BYTES.sub(b"?>", header)
    header = _RE_UTF16_ENCODING_BYTES.sub(rb"\1utf-8\3", header)

    content = header + tail
    return _RE_UNQUOTED_ATTR_BYTES.sub(rb'\1="\2"', content)


def _prepare_xml_bytes(text: str) -> bytes:
    cleaned = _clean_feed_bytes(
        _ensure_utf8_xml_declaration(text).encode("utf-8", errors="replace")
    )
    # U+2028 and U+2029 are not allowed in XML 1.0.
    if b"\xe2\x80\xa8" in cleaned or b"\xe2\x80\xa9" in cleaned:
        cleaned = cleaned.replace(b"\xe2\x80\xa8", b"\n").replace(b"\xe2\x80\xa9", b"\n")

    head = cleaned[:200].lower()
    if b"?xml?xml" in head or b"??>" in head or b"utf-16" in head:
        cleaned = _fix_malformed_xml_bytes(cleaned)
    return cleaned


def _entity_to_reference(match: re.Match) -> bytes:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name.decode("ascii"))
    if codepoint is None:
        return b"&amp;" + name + b";"
    return b"&#%d;" % codepoint


def _repair_entities(content: bytes) -> bytes:
    content = _RE_NAMED_ENTITY_BYTES.sub(_entity_to_reference, content)
    return _RE_STRAY_AMPERSAND_BYTES.sub(b"&amp;", content)


def parse_document(text: Optional[str]) -> Optional[etree._ElementTree]:
    """Parse feed text into an lxml tree without ever raising.

    The strict parser runs first. Documents it rejects are entity-repaired and
    handed to the recovering parser, and as a last resort to the HTML parser.
    Returns None when nothing usable comes out.
    """
    if not text or not text.strip():
        return None
    content = _prepare_xml_bytes(text)
    root = None
    try:
        root = etree.fromstring(content, parser=_STRICT_XML_PARSER)
    except etree.XMLSyntaxError as e:
        logger.debug("Strict parse failed, recovering: %s", e)
        try:
            root = etree.fromstring(_repair_entities(content), parser=_RECOVER_XML_PARSER)
        except etree.XMLSyntaxError as e:
            logger.debug("Recovering parse failed: %s", e)
    if root is None:
        try:
            root = etree.fromstring(content, parser=_HTML_PARSER)
        except (etree.XMLSyntaxError, ValueError) as e:
            logger.debug("HTML fallback parse failed: %s", e)
            return None
        if root is not None:
            logger.debug("Parsed feed with the HTML parser")
    if root is None:
        return None
    return root.getroottree()
