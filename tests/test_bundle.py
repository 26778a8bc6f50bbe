"""Tests for the bundle writer."""

import pytest

from swapbench.bundle import TOKEN_SINKS, BundleWriter, read_bundle


class TestBundleWriter:

    def test_create_makes_directories(self, tmp_path):
        writer = BundleWriter(tmp_path / "data")
        path = writer.create("mint", "token-mint/token-mint.out")
        assert path == tmp_path / "data" / "token-mint" / "token-mint.out"
        assert path.read_text() == ""

    def test_append_comma_terminated_lines(self, tmp_path):
        writer = BundleWriter(tmp_path)
        path = writer.create("swap", "swap/swap.out")

        writer.append("swap", "0xaa")
        writer.append("swap", "0xbb")

        assert path.read_text() == "0xaa,\n0xbb,\n"
        assert read_bundle(path) == ["0xaa", "0xbb"]

    def test_create_truncates_previous_run(self, tmp_path):
        writer = BundleWriter(tmp_path)
        path = writer.create("mint", "m/m.out")
        writer.append("mint", "0x01")

        BundleWriter(tmp_path).create("mint", "m/m.out")

        assert path.read_text() == ""

    def test_sinks_are_independent(self, tmp_path):
        writer = BundleWriter(tmp_path)
        paths = writer.create_all(TOKEN_SINKS)
        writer.append("transfer", "0x02")

        assert read_bundle(paths["transfer"]) == ["0x02"]
        assert read_bundle(paths["mint"]) == []

    def test_unknown_sink(self, tmp_path):
        with pytest.raises(KeyError):
            BundleWriter(tmp_path).append("mint", "0x01")
