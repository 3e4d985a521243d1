"""
Tests for FFmpeg capability probing.
"""

import sys

import pytest

from hwconvert.hardware.capabilities import (
    CapabilityProber,
    get_capability_prober,
    parse_codec_listing,
)
from hwconvert.hardware.models import CapabilitySet

from conftest import FakeProber, codec_listing


SAMPLE_ENCODERS = """Encoders:
 V..... = Video
 A..... = Audio
 S..... = Subtitle
 .F.... = Frame-level multithreading
 ------
 V....D libx264              libx264 H.264 / AVC / MPEG-4 AVC (codec h264)
 V....D h264_nvenc           NVIDIA NVENC H.264 encoder (codec h264)
 V..... hevc_vaapi           H.265/HEVC (VAAPI) (codec hevc)
 A....D aac                  AAC (Advanced Audio Coding)
"""


class TestParseCodecListing:
    def test_parses_names(self):
        names = parse_codec_listing(SAMPLE_ENCODERS)
        assert names == {"libx264", "h264_nvenc", "hevc_vaapi", "aac"}

    def test_skips_legend_and_header(self):
        names = parse_codec_listing(SAMPLE_ENCODERS)
        assert "=" not in names
        assert "Encoders:" not in names
        assert "------" not in names

    def test_empty_output(self):
        assert parse_codec_listing("") == frozenset()


class TestCapabilityProber:
    @pytest.mark.asyncio
    async def test_encoder_lookup(self, fake_prober):
        assert await fake_prober.check_encoder_available("h264_nvenc") is True
        assert await fake_prober.check_encoder_available("av1_nvenc") is False

    @pytest.mark.asyncio
    async def test_decoder_lookup(self, fake_prober):
        assert await fake_prober.check_decoder_available("hevc_cuvid") is True
        assert await fake_prober.check_decoder_available("vp9_cuvid") is False

    @pytest.mark.asyncio
    async def test_results_are_cached(self, fake_prober):
        for _ in range(3):
            await fake_prober.list_encoders()
            await fake_prober.list_decoders()

        assert fake_prober.calls == ["-encoders", "-decoders"]

    @pytest.mark.asyncio
    async def test_clear_cache(self, fake_prober):
        await fake_prober.list_encoders()
        fake_prober.clear_cache()
        await fake_prober.list_encoders()

        assert fake_prober.calls == ["-encoders", "-encoders"]

    @pytest.mark.asyncio
    async def test_missing_binary_is_empty_and_not_cached(self, tmp_path):
        prober = CapabilityProber(str(tmp_path / "no-ffmpeg"))

        assert await prober.list_encoders() == frozenset()
        assert await prober.check_encoder_available("libx264") is False
        assert prober._encoders is None

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the FFmpeg binary")
    @pytest.mark.asyncio
    async def test_failing_binary_is_not_cached(self, tmp_path):
        ffmpeg = tmp_path / "ffmpeg"
        ffmpeg.write_text("#!/bin/sh\nexit 1\n")
        ffmpeg.chmod(0o755)
        prober = CapabilityProber(str(ffmpeg))

        assert await prober.list_encoders() == frozenset()
        assert prober._encoders is None

        ffmpeg.write_text("#!/bin/sh\nprintf ' V....D h264_nvenc           NVIDIA NVENC H.264 encoder\\n'\n")

        assert await prober.check_encoder_available("h264_nvenc") is True

    @pytest.mark.asyncio
    async def test_get_capabilities(self):
        prober = FakeProber(encoders=["libx264", "h264_nvenc", "hevc_qsv"], decoders=["h264"])

        capabilities = await prober.get_capabilities()

        assert capabilities.has_encoder("hevc_qsv")
        assert capabilities.has_decoder("h264")
        assert capabilities.hardware_encoders() == {"nvenc": ["h264_nvenc"], "qsv": ["hevc_qsv"]}

    def test_codec_listing_helper_round_trips(self):
        assert parse_codec_listing(codec_listing(["a_nvenc", "b"])) == {"a_nvenc", "b"}


class TestCapabilitySet:
    def test_to_dict(self):
        capabilities = CapabilitySet(frozenset({"libx264", "av1_amf"}), frozenset({"h264"}))
        data = capabilities.to_dict()

        assert data["encoders"] == ["av1_amf", "libx264"]
        assert data["decoders"] == ["h264"]
        assert data["hardware_encoders"] == {"amf": ["av1_amf"]}


class TestGlobalProber:
    def test_shared_instance(self):
        first = get_capability_prober("/opt/ffmpeg/bin/ffmpeg")
        assert get_capability_prober() is first
        assert get_capability_prober("/opt/ffmpeg/bin/ffmpeg") is first

    def test_new_path_replaces_instance(self):
        first = get_capability_prober("/opt/a/ffmpeg")
        second = get_capability_prober("/opt/b/ffmpeg")

        assert second is not first
        assert second.ffmpeg_path == "/opt/b/ffmpeg"
