from pathlib import Path
import logging

from lxml import etree # type: ignore

from mitv_epg.exceptions import RegistryLoadError
from mitv_epg.services.diagnostics import Diagnostic, DiagnosticKind, record
from mitv_epg.services.listing_types import ChannelEntry

logger = logging.getLogger(__name__)

def load_channels(file_path: Path | str) -> tuple[list[ChannelEntry], list[Diagnostic]]:
    """
    Parse the channel registry file

    Expected layout:
        <channels>
          <channel site_id="globo" xmltv_id="Globo.br">Globo</channel>
        </channels>

    Args:
        file_path: Path to channels.xml

    Returns:
        Tuple of (channels, diagnostics)
        - channels: Valid registry entries in file order
        - diagnostics: ChannelFailed entries for rows that were skipped

    Raises:
        RegistryLoadError: If the file is missing, unreadable or malformed
    """
    logger.debug(f"Loading channel registry: {file_path}")

    try:
        tree = etree.parse(str(file_path))
        root = tree.getroot()
    except (OSError, etree.XMLSyntaxError) as e:
        logger.error(f"  Channel registry could not be loaded: {e}")
        raise RegistryLoadError(f"Cannot load channel registry '{file_path}': {e}") from e

    channels: list[ChannelEntry] = []
    diagnostics: list[Diagnostic] = []
    seen: set[str] = set()

    for position, channel in enumerate(root.iter('channel'), start=1):
        site_id = (channel.get('site_id') or '').strip()
        xmltv_id = (channel.get('xmltv_id') or '').strip()
        label = xmltv_id or site_id or f"#{position}"

        if not site_id or not xmltv_id:
            diagnostics.append(record(
                logger,
                DiagnosticKind.CHANNEL_FAILED,
                label,
                "Registry entry is missing site_id or xmltv_id",
            ))
            continue

        if xmltv_id in seen:
            diagnostics.append(record(
                logger,
                DiagnosticKind.CHANNEL_FAILED,
                xmltv_id,
                f"Duplicate registry entry (site_id={site_id}) ignored",
            ))
            continue
        seen.add(xmltv_id)

        display_name = (channel.text or '').strip() or xmltv_id
        channels.append(ChannelEntry(
            channel_id=xmltv_id,
            channel_ref=site_id,
            display_name=display_name
        ))

    logger.info(f"Channel registry loaded: {len(channels)} channels, {len(diagnostics)} skipped")

    return channels, diagnostics
