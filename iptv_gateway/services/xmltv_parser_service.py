from typing import Optional
import logging

from lxml import etree # type: ignore

from iptv_gateway.services.catalog_types import EPGIndex, Program
from iptv_gateway.utils.xmltv_time import DateFormatError, parse_xmltv_time

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Bez tytułu"
DEFAULT_DESCRIPTION = ""


def _build_parser() -> etree.XMLParser:
    return etree.XMLParser(
        encoding="utf-8",
        recover=True,
        huge_tree=True,
        resolve_entities=False,
        no_network=True,
    )


def parse_xmltv(content: str | bytes, into: Optional[EPGIndex] = None) -> EPGIndex:
    """
    Parse XMLTV text into an EPG index

    Programs are appended to `into` as they are parsed, so a failure part way
    through leaves the entries gathered so far. Nothing is raised to the
    caller: structural errors are logged and the (possibly empty) index is
    returned.

    Args:
        content: XMLTV document
        into: Index to fill in place (a new one is created when omitted)

    Returns:
        Mapping of guide channel id -> programs in document order
    """
    index: EPGIndex = into if into is not None else {}

    if isinstance(content, str):
        content = content.encode("utf-8")

    try:
        root = etree.fromstring(content, _build_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.error(f"EPG parse error: {e}")
        return index

    if root is None:
        logger.error("EPG parse error: document has no root element")
        return index

    parsed = 0
    skipped = 0
    try:
        for programme in root.iter("programme"):
            channel_id, program = _parse_single_program(programme)
            if program is None:
                skipped += 1
                continue
            index.setdefault(channel_id, []).append(program)
            parsed += 1
    except (etree.LxmlError, ValueError, TypeError) as e:
        logger.error(f"EPG parse error after {parsed} programs: {e}")

    logger.info(f"EPG parsed: {parsed} programs for {len(index)} channels ({skipped} skipped)")
    return index


def _parse_single_program(programme: etree._Element) -> tuple[str, Optional[Program]]:
    """Parse single programme element"""
    channel_id = programme.get("channel")
    start_str = programme.get("start")
    stop_str = programme.get("stop")

    if not channel_id or not start_str or not stop_str:
        return channel_id or "", None

    try:
        start = parse_xmltv_time(start_str)
        stop = parse_xmltv_time(stop_str)
    except DateFormatError:
        logger.debug("Skipping programme with unparsable times on %s", channel_id)
        return channel_id, None

    if stop <= start:
        logger.debug("Skipping programme ending before it starts on %s", channel_id)
        return channel_id, None

    return channel_id, Program(
        start=start,
        stop=stop,
        title=_get_text(programme, "title", default=DEFAULT_TITLE),
        desc=_get_text(programme, "desc", default=DEFAULT_DESCRIPTION),
    )


def _get_text(element: etree._Element, tag: str, default: str) -> str:
    """Text of the first matching child, or the default when the child is absent"""
    child = element.find(tag)
    if child is None:
        return default
    return "".join(child.itertext())
