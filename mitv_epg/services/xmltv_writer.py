"""
XMLTV Formatter

Renders finalized channel timelines as an XMLTV document.
"""
from collections.abc import Sequence
from datetime import timezone, tzinfo
from pathlib import Path
import logging

from lxml import etree # type: ignore

from mitv_epg.services.listing_types import Program
from mitv_epg.utils.file_operations import write_file_atomic
from mitv_epg.utils.timezone import format_xmltv_time

logger = logging.getLogger(__name__)


class XMLTVFormatter:
    """Collects channels and programmes and renders them as XMLTV."""

    def __init__(
        self,
        *,
        output_tz: tzinfo = timezone.utc,
        lang: str | None = "pt",
        generator_name: str = "EPG Generator",
    ) -> None:
        self.output_tz = output_tz
        self.lang = lang
        self.generator_name = generator_name
        self._channels: list[tuple[str, str]] = []
        self._programmes: list[Program] = []

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    @property
    def programme_count(self) -> int:
        return len(self._programmes)

    def emit(self, channel_id: str, display_name: str, programs: Sequence[Program]) -> None:
        """
        Add a channel and its finalized programmes

        Args:
            channel_id: XMLTV id
            display_name: Human readable channel name
            programs: Ordered, validated programmes of the channel
        """
        self._channels.append((channel_id, display_name or channel_id))
        self._programmes.extend(programs)
        logger.debug(f"Queued {len(programs)} programmes for {channel_id}")

    def render(self) -> bytes:
        """Serialize everything emitted so far; channels precede programmes."""
        root = etree.Element("tv", {"generator-info-name": self.generator_name})

        for channel_id, display_name in self._channels:
            channel = etree.SubElement(root, "channel", {"id": channel_id})
            etree.SubElement(channel, "display-name").text = display_name

        for program in self._programmes:
            programme = etree.SubElement(root, "programme", {
                "start": format_xmltv_time(program.start, self.output_tz),
                "stop": format_xmltv_time(program.end, self.output_tz),
                "channel": program.channel_id,
            })
            self._add_text(programme, "title", program.title)
            if program.description:
                self._add_text(programme, "desc", program.description)

        return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8")

    async def write(self, path: Path | str) -> Path:
        """Render and atomically write the document."""
        content = self.render()
        logger.info(
            f"Writing XMLTV: {self.channel_count} channels, {self.programme_count} programmes"
        )
        return await write_file_atomic(path, content)

    def _add_text(self, parent: etree._Element, tag: str, text: str) -> None:
        attributes = {"lang": self.lang} if self.lang else {}
        etree.SubElement(parent, tag, attributes).text = text
