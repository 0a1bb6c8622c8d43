"""Tests for the command-line interface."""

import os

import numpy as np
import pytest

from image_match import cli
from image_match.cli import build_parser, main
from image_match.feature_store import read_feature_vectors, write_feature_vectors


class TestParser:
    """Tests for argument parsing."""

    def test_query_defaults(self):
        args = build_parser().parse_args(["query", "t.png", "imgs"])
        assert args.mode == "baseline-patch"
        assert args.top_n == 3

    def test_rejects_unknown_mode(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["query", "t.png", "imgs", "--mode", "sift"])

    def test_rejects_negative_top_n(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["query", "t.png", "imgs", "--top-n", "-2"])


class TestCommands:
    """End-to-end runs over a small image directory."""

    def test_query(self, image_dir, capsys):
        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["query", target, str(image_dir),
                     "--mode", "rg-chromaticity", "--top-n", "5"])
        out = capsys.readouterr().out

        assert code == 0
        assert "b_blue.png" in out
        assert "c_green.png" in out
        assert "a_red.png" not in out
        assert "d_broken.jpg" not in out

    def test_query_absolute_target_relative_dir(self, image_dir, monkeypatch, capsys):
        monkeypatch.chdir(image_dir.parent)
        target = os.path.abspath(os.path.join(str(image_dir), "a_red.png"))
        code = main(["query", target, image_dir.name,
                     "--mode", "baseline-patch", "--top-n", "5"])
        out = capsys.readouterr().out

        assert code == 0
        assert "a_red.png" not in out
        assert out.count("Image: ") == 2

    def test_query_relative_target_absolute_dir(self, image_dir, monkeypatch, capsys):
        monkeypatch.chdir(image_dir)
        code = main(["query", "a_red.png", str(image_dir), "--top-n", "5"])
        out = capsys.readouterr().out

        assert code == 0
        assert "a_red.png" not in out

    def test_invalid_log_level(self, image_dir, monkeypatch, capsys):
        monkeypatch.setattr(cli, "LOG_LEVEL", "LOUD")
        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["query", target, str(image_dir)])
        assert code == 1
        assert "Unknown log level" in capsys.readouterr().err

    def test_invalid_log_level_flag(self, image_dir, capsys):
        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["--log-level", "chatty", "query", target, str(image_dir)])
        assert code == 1
        assert "chatty" in capsys.readouterr().err

    def test_query_missing_target(self, image_dir, capsys):
        code = main(["query", str(image_dir / "absent.png"), str(image_dir)])
        assert code == 1
        assert "Error" in capsys.readouterr().err

    def test_deep_mode_without_embeddings(self, image_dir, capsys):
        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["query", target, str(image_dir), "--mode", "deep-embedding"])
        assert code == 1
        assert "embedding store" in capsys.readouterr().err

    def test_deep_mode_with_embeddings(self, image_dir, tmp_path, capsys):
        csv_path = tmp_path / "resnet.csv"
        write_feature_vectors(str(csv_path), [
            ("a_red.png", [1.0, 0.0]),
            ("b_blue.png", [0.0, 1.0]),
            ("c_green.png", [0.9, 0.2]),
        ])
        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["query", target, str(image_dir), "--mode", "deep-embedding",
                     "--embeddings", str(csv_path), "--top-n", "1"])
        out = capsys.readouterr().out

        assert code == 0
        assert "c_green.png" in out
        assert "b_blue.png" not in out

    def test_extract_then_match_vectors(self, image_dir, tmp_path, capsys):
        csv_path = str(tmp_path / "features" / "vectors.csv")
        assert main(["extract", str(image_dir), "--output", csv_path]) == 0
        assert len(read_feature_vectors(csv_path)) == 3

        target = os.path.join(str(image_dir), "a_red.png")
        code = main(["match-vectors", target, csv_path, "--top-n", "2"])
        out = capsys.readouterr().out

        assert code == 0
        assert out.count("Image: ") == 2
        assert "Image: a_red.png" not in out

    def test_match_vectors_extracts_unlisted_target(self, image_dir, tmp_path, capsys):
        csv_path = str(tmp_path / "vectors.csv")
        write_feature_vectors(csv_path, [("other.png", np.zeros(49))])
        target = os.path.join(str(image_dir), "a_red.png")

        assert main(["match-vectors", target, csv_path]) == 0
        assert "other.png" in capsys.readouterr().out
