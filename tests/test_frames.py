"""Tests for frame enumeration."""

import pytest
from repertoirevision.core.errors import FrameDirectoryError
from repertoirevision.preprocessing.frames import FrameCatalog


class TestFrameCatalog:
    """Tests for FrameCatalog."""

    def test_numeric_ordering(self, tmp_path):
        for name in ["frame_10.png", "frame_3.png", "frame_1.jpg", "frame_20.jpeg"]:
            (tmp_path / name).write_bytes(b"")

        frames = FrameCatalog(tmp_path).list_frames()

        assert [f.index for f in frames] == [1, 3, 10, 20]
        assert frames[1].path.endswith("frame_3.png")

    def test_ignores_non_matching_entries(self, tmp_path):
        (tmp_path / "frame_1.png").write_bytes(b"")
        (tmp_path / "frame_2.gif").write_bytes(b"")
        (tmp_path / "thumb_3.png").write_bytes(b"")
        (tmp_path / "frame_x.png").write_bytes(b"")
        (tmp_path / "frame_4.png.bak").write_bytes(b"")
        (tmp_path / "frame_5.png").mkdir()

        frames = FrameCatalog(tmp_path).list_frames()

        assert [f.index for f in frames] == [1]

    def test_empty_directory(self, tmp_path):
        assert FrameCatalog(tmp_path).list_frames() == []

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(FrameDirectoryError):
            FrameCatalog(tmp_path / "missing").list_frames()
