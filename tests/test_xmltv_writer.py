"""
Tests for XMLTV rendering and output.
"""
from lxml import etree
import pytest

from mitv_epg.services.listing_types import Program
from mitv_epg.services.xmltv_writer import XMLTVFormatter
from mitv_epg.utils.timezone import resolve_zone
from tests.helpers import DAY, NEXT_DAY, at


PROGRAMS = [
    Program(start=at(DAY, 23, 30), end=at(NEXT_DAY, 1), title="Jornal", channel_id="Globo.br",
            broadcast_day=DAY, description="Notícias"),
    Program(start=at(NEXT_DAY, 1), end=at(NEXT_DAY, 3), title="Filme", channel_id="Globo.br",
            broadcast_day=DAY),
]


def rendered(formatter: XMLTVFormatter):
    return etree.fromstring(formatter.render())


class TestXMLTVFormatter:

    def test_document_layout(self):
        formatter = XMLTVFormatter()
        formatter.emit("Globo.br", "Globo", PROGRAMS)
        formatter.emit("SBT.br", "SBT", [])

        root = rendered(formatter)

        assert root.tag == "tv"
        assert root.get("generator-info-name") == "EPG Generator"
        assert [child.tag for child in root] == ["channel", "channel", "programme", "programme"]
        assert root.find("channel").get("id") == "Globo.br"
        assert root.find("channel/display-name").text == "Globo"
        assert formatter.channel_count == 2
        assert formatter.programme_count == 2

    def test_programme_attributes(self):
        formatter = XMLTVFormatter()
        formatter.emit("Globo.br", "Globo", PROGRAMS)

        first, second = rendered(formatter).findall("programme")

        assert first.get("start") == "20251009233000 +0000"
        assert first.get("stop") == "20251010010000 +0000"
        assert first.get("channel") == "Globo.br"
        assert first.find("title").text == "Jornal"
        assert first.find("title").get("lang") == "pt"
        assert first.find("desc").text == "Notícias"
        assert second.find("desc") is None

    def test_output_zone(self):
        formatter = XMLTVFormatter(output_tz=resolve_zone("America/Sao_Paulo"))
        formatter.emit("Globo.br", "Globo", PROGRAMS[:1])

        programme = rendered(formatter).find("programme")

        assert programme.get("start") == "20251009203000 -0300"

    def test_lang_can_be_omitted(self):
        formatter = XMLTVFormatter(lang=None, generator_name="Test")
        formatter.emit("Globo.br", "Globo", PROGRAMS[:1])

        root = rendered(formatter)

        assert root.get("generator-info-name") == "Test"
        assert root.find("programme/title").get("lang") is None

    def test_declaration_and_encoding(self):
        formatter = XMLTVFormatter()
        formatter.emit("Globo.br", "Globo", PROGRAMS)

        content = formatter.render()

        assert content.startswith(b"<?xml version='1.0' encoding='UTF-8'?>")
        assert "Notícias".encode("utf-8") in content

    @pytest.mark.asyncio
    async def test_write(self, tmp_path):
        formatter = XMLTVFormatter()
        formatter.emit("Globo.br", "Globo", PROGRAMS)
        target = tmp_path / "out" / "epg.xml"

        written = await formatter.write(target)

        assert written == target
        assert target.read_bytes() == formatter.render()
        assert not (target.parent / ".epg.xml.tmp").exists()
