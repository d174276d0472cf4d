"""Tests for the command line entry point."""

import json

import numpy as np
import pytest
from repertoirevision.main import EXIT_ERROR, EXIT_OK, build_parser, main


def blank_frames(write_frames, count=3):
    return write_frames([np.full((400, 480), 90, dtype=np.uint8)] * count)


class TestMain:
    """Tests for main()."""

    def test_no_board(self, write_frames, capsys):
        frames_dir = blank_frames(write_frames)

        code = main([str(frames_dir)])

        assert code == EXIT_OK
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "no_board"
        assert output["totalFrames"] == 3
        assert output["positions"] == []
        assert "repertoire" not in output

    def test_missing_directory(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing")]) == EXIT_ERROR
        assert capsys.readouterr().out == ""

    def test_empty_directory(self, tmp_path):
        assert main([str(tmp_path)]) == EXIT_ERROR

    def test_board_frames(self, write_frames, render_board, starting_board, capsys):
        frames_dir = write_frames([render_board(starting_board, origin=(80, 80))] * 5)

        code = main([str(frames_dir)])

        assert code == EXIT_OK
        captured = capsys.readouterr()
        output = json.loads(captured.out)
        assert output["status"] == "completed"
        assert len(output["positions"]) == 5
        assert output["boardRegion"]["x1"] == 80
        assert output["positions"][0]["fen"] == starting_board + " w KQkq -"

        progress = [
            json.loads(line) for line in captured.err.splitlines()
            if line.startswith("{")
        ]
        assert progress[-1] == {"processedFrames": 5, "totalFrames": 5}

    def test_tree_output(self, write_frames, capsys):
        frames_dir = blank_frames(write_frames)

        main([str(frames_dir), "--tree"])

        output = json.loads(capsys.readouterr().out)
        assert output["repertoire"]["tree"] is None
        assert output["repertoire"]["color"] == "white"


    @pytest.mark.parametrize("option", [["--fps", "0"], ["--search-limit", "-1"]])
    def test_invalid_config_is_usage_error(self, write_frames, capsys, option):
        frames_dir = blank_frames(write_frames)

        with pytest.raises(SystemExit) as exc_info:
            main([str(frames_dir), *option])

        assert exc_info.value.code == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "must be" in captured.err


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["frames"])

        assert args.fps == 1.0
        assert args.change_threshold == 5.0
        assert args.search_limit == 10
        assert args.tree is False
        assert args.continuity_filter is False
        assert args.log_level == "WARNING"

    def test_options(self):
        args = build_parser().parse_args(
            ["frames", "--fps", "2", "--tree", "--continuity-filter", "--log-level", "DEBUG"]
        )

        assert args.fps == 2.0
        assert args.tree is True
        assert args.continuity_filter is True
        assert args.log_level == "DEBUG"
