"""
Xero API response body parsers.

This module decodes raw HTTP responses into the plain dict/list shape
that ResponseEnvelope classifies. JSON is decoded directly, legacy XML is
converted to the same shape, and anything else (HTML error pages, bare
text) is wrapped into a {"message", "httpStatusCode"} map, the shape the
newer APIs use for simple errors.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Union

import requests

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPES = ("application/json",)
XML_CONTENT_TYPES = ("text/xml", "application/xml")

ParsedBody = Union[Dict[str, Any], List[Any]]


def parse_response(response: requests.Response) -> ParsedBody:
    """
    Parse an API response body into dicts and lists.

    Args:
        response: HTTP response

    Returns:
        Decoded body; {} for an empty body
    """
    # Strip off the character encoding, e.g. "application/json; charset=utf-8"
    content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
    text = response.text

    if not text.strip():
        return {}

    if content_type in JSON_CONTENT_TYPES:
        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Response declared as JSON could not be decoded: {e}")
            return _wrap_message(text, response.status_code)
    elif content_type in XML_CONTENT_TYPES:
        try:
            data = xml_to_data(text)
        except ET.ParseError as e:
            logger.warning(f"Response declared as XML could not be parsed: {e}")
            return _wrap_message(text, response.status_code)
    else:
        # Older APIs return a plain string for some errors, under a
        # variety of content types.
        return _wrap_message(text, response.status_code)

    if isinstance(data, (dict, list)):
        return data

    return _wrap_message(str(data), response.status_code)


def _wrap_message(message: str, status_code: int) -> Dict[str, Any]:
    return {
        "message": message.strip(),
        "httpStatusCode": status_code,
    }


def xml_to_data(text: str) -> Dict[str, Any]:
    """
    Convert an XML document to nested dicts.

    The root element is dropped. Repeated sibling elements become a list
    under their shared tag, which makes the result ambiguous for lists of
    one item; prefer JSON where the API offers it.

    Args:
        text: XML document

    Returns:
        Dict of the root element's children

    Raises:
        xml.etree.ElementTree.ParseError: If the document is malformed
    """
    root = ET.fromstring(text)
    value = _element_to_value(root)
    return value if isinstance(value, dict) else {root.tag: value}


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)

    if not children:
        text = (element.text or "").strip()
        if element.attrib:
            value: Dict[str, Any] = {"@attributes": dict(element.attrib)}
            if text:
                value["value"] = text
            return value
        # Empty elements become empty maps, as a JSON round-trip would give.
        return text if text else {}

    result: Dict[str, Any] = {}
    if element.attrib:
        result["@attributes"] = dict(element.attrib)

    repeated = set()
    for child in children:
        child_value = _element_to_value(child)
        if child.tag not in result:
            result[child.tag] = child_value
        elif child.tag in repeated:
            result[child.tag].append(child_value)
        else:
            result[child.tag] = [result[child.tag], child_value]
            repeated.add(child.tag)

    return result
