"""
Tests for extended M3U playlist parsing.
"""
from iptv_gateway.services.catalog_types import Channel
from iptv_gateway.services.m3u_parser_service import parse_m3u

from tests.conftest import SAMPLE_M3U


class TestAttributeExtraction:
    """Test EXTINF attribute extraction and fallbacks."""

    def test_logo_group_and_name(self):
        """Test tvg-logo, group-title and trailing name are extracted exactly."""
        content = '#EXTINF:-1 tvg-logo="X" group-title="Y",Z\nhttp://host/stream'
        channels = parse_m3u(content)

        assert channels == [Channel(name="Z", url="http://host/stream", group="Y", logo="X")]

    def test_missing_attributes_fall_back(self):
        """Test a bare metadata line gets the default logo, group and name."""
        channels = parse_m3u("#EXTINF:-1\nhttp://host/stream")

        assert len(channels) == 1
        assert channels[0].logo is None
        assert channels[0].group == "Uncategorized"
        assert channels[0].name == "Unknown Channel"

    def test_name_follows_last_comma(self):
        """Test the display name is taken after the last comma."""
        content = '#EXTINF:-1 group-title="News, World",BBC World\nhttp://host/bbc'
        channels = parse_m3u(content)

        assert channels[0].name == "BBC World"
        assert channels[0].group == "News, World"

    def test_name_is_trimmed(self):
        """Test whitespace around the name is removed."""
        channels = parse_m3u("#EXTINF:-1,   Polsat  \nhttp://host/polsat")
        assert channels[0].name == "Polsat"

    def test_empty_logo_is_kept_as_empty_string(self):
        """Test an explicitly empty tvg-logo is not replaced by None."""
        channels = parse_m3u('#EXTINF:-1 tvg-logo="",TVN\nhttp://host/tvn')
        assert channels[0].logo == ""


class TestRecordAssembly:
    """Test how metadata and URL lines are paired."""

    def test_sample_playlist(self):
        """Test a realistic playlist yields every channel in order."""
        channels = parse_m3u(SAMPLE_M3U)

        assert [ch.name for ch in channels] == ["TVP 1 HD", "Film Premiere", "Show S01E02"]
        assert channels[0].url == "http://cdn.example.com/live/tvp1.m3u8"
        assert channels[1].group == "Movies HD"
        assert all(ch.programs is None for ch in channels)

    def test_metadata_without_url_is_dropped(self):
        """Test a metadata line with no following URL emits nothing."""
        assert parse_m3u("#EXTM3U\n#EXTINF:-1,Orphan\n") == []

    def test_metadata_followed_by_metadata(self):
        """Test an orphan metadata line is replaced by the next one."""
        content = "#EXTINF:-1,Orphan\n#EXTINF:-1,Real\nhttp://host/real"
        channels = parse_m3u(content)

        assert [ch.name for ch in channels] == ["Real"]

    def test_comment_lines_between_metadata_and_url(self):
        """Test other directives between EXTINF and URL are skipped."""
        content = "#EXTINF:-1,With Opts\n#EXTVLCOPT:http-user-agent=VLC\n\nhttp://host/opts"
        channels = parse_m3u(content)

        assert [ch.url for ch in channels] == ["http://host/opts"]

    def test_url_without_metadata_is_ignored(self):
        """Test URL lines that do not follow a metadata line are ignored."""
        content = "http://host/loose\n#EXTINF:-1,Kept\nhttp://host/kept\nhttp://host/extra"
        channels = parse_m3u(content)

        assert [ch.url for ch in channels] == ["http://host/kept"]

    def test_blank_name_is_dropped(self):
        """Test a name that is only whitespace does not produce a channel."""
        assert parse_m3u("#EXTINF:-1,   \nhttp://host/blank") == []

    def test_crlf_line_endings(self):
        """Test Windows line endings are handled."""
        channels = parse_m3u("#EXTM3U\r\n#EXTINF:-1,CRLF\r\nhttp://host/crlf\r\n")
        assert channels == [Channel(name="CRLF", url="http://host/crlf")]

    def test_urls_are_not_validated(self):
        """Test any non-comment line is accepted as the stream URL."""
        channels = parse_m3u("#EXTINF:-1,Odd\nnot a url at all")
        assert channels[0].url == "not a url at all"


class TestDegenerateInput:
    """Test the parser never fails on degenerate documents."""

    def test_empty_document(self):
        """Test an empty document yields an empty list."""
        assert parse_m3u("") == []

    def test_none_document(self):
        """Test None is treated as an empty document."""
        assert parse_m3u(None) == []

    def test_header_only(self):
        """Test a header-only playlist yields no channels."""
        assert parse_m3u("#EXTM3U\n") == []

    def test_every_channel_has_name_and_url(self):
        """Test emitted channels always carry a non-empty name and URL."""
        content = "\n".join([
            "#EXTINF:-1,A", "http://h/a",
            "#EXTINF:-1,", "http://h/b",
            "#EXTINF:-1, ", "http://h/c",
            "#EXTINF:-1,D",
        ])
        channels = parse_m3u(content)

        assert channels
        assert all(ch.name and ch.url for ch in channels)

    def test_reparse_is_deterministic(self):
        """Test parsing the same text twice gives element-wise equal lists."""
        first = parse_m3u(SAMPLE_M3U)
        second = parse_m3u(SAMPLE_M3U)

        assert first == second
        assert all(a is not b for a, b in zip(first, second))
