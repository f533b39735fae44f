"""
Safe XML parsing - defused against XXE, billion laughs, and entity expansion.

Centralizes all XML parsing so every entry point (processor, server) uses
the same hardened parser. Any failure to produce a tree is reported as an
``INVALID_XML`` processing error.

Blocks:
- External entity injection (XXE): file:///etc/passwd, http:// callbacks
- Billion laughs / entity expansion: exponential DTD bombs
- DTD retrieval: remote DTD loading
"""

import xml.etree.ElementTree as ET
from typing import Union

import defusedxml.ElementTree as _safe_ET
from defusedxml import DefusedXmlException

from .models import XMLProcessError, XMLProcessErrorType


def decode_content(content: Union[str, bytes]) -> str:
    """Decode raw upload bytes as UTF-8 text. Strings pass through."""
    if isinstance(content, bytes):
        try:
            return content.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise XMLProcessError(
                XMLProcessErrorType.INVALID_XML,
                f"File is not valid UTF-8: {e}"
            ) from e
    return content


def safe_fromstring(text: Union[str, bytes]) -> ET.Element:
    """Parse an XML string with XXE and entity-expansion protection.

    Comments inside the root element are kept so they survive a
    parse/serialize round trip.

    Raises:
        XMLProcessError: INVALID_XML for malformed or hostile input.
    """
    text = decode_content(text)
    parser = _safe_ET.XMLParser(
        target=ET.TreeBuilder(insert_comments=True, insert_pis=True)
    )
    try:
        parser.feed(text)
        return parser.close()
    except ET.ParseError as e:
        raise XMLProcessError(XMLProcessErrorType.INVALID_XML, f"Invalid XML: {e}") from e
    except DefusedXmlException as e:
        raise XMLProcessError(
            XMLProcessErrorType.INVALID_XML,
            f"Forbidden XML construct: {type(e).__name__}"
        ) from e
