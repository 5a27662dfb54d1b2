"""
Unit tests for frame_store module.
"""

import pytest
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from frame_store import FrameDirectory, deconstruct_video, reconstruct_video, get_video_fps


def write_frames(directory, count=3, size=(64, 48)):
    frames = FrameDirectory(str(directory))
    for i in range(count):
        frame = np.full((size[1], size[0], 3), i * 40, dtype=np.uint8)
        frames.save(frames.frame_path(i + 1), frame)
    return frames


class TestFrameDirectory:
    """Test cases for FrameDirectory."""

    def test_creates_directory(self, tmp_path):
        path = tmp_path / "frames"
        FrameDirectory(str(path))
        assert path.is_dir()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FrameDirectory(str(tmp_path / "missing"), create=False)

    def test_path_is_file(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(ValueError):
            FrameDirectory(str(path))

    def test_frames_sorted_by_name(self, tmp_path):
        frames = write_frames(tmp_path, count=3)
        (tmp_path / "notes.txt").write_text("ignored")

        names = [os.path.basename(p) for p in frames.list_frames()]

        assert names == ["frame_0001.png", "frame_0002.png", "frame_0003.png"]
        assert len(frames) == 3

    def test_frames_sorted_by_number_past_four_digits(self, tmp_path):
        """Test that frame 10000 follows frame 9999."""
        frames = FrameDirectory(str(tmp_path))
        frame = np.zeros((4, 4, 3), dtype=np.uint8)
        for number in (10000, 9999, 10001):
            frames.save(frames.frame_path(number), frame)

        names = [os.path.basename(p) for p in frames.list_frames()]

        assert names == ["frame_9999.png", "frame_10000.png", "frame_10001.png"]

    def test_roundtrip_is_lossless_png(self, tmp_path):
        frames = FrameDirectory(str(tmp_path))
        frame = np.random.default_rng(1).integers(0, 256, (10, 12, 3), dtype=np.uint8)
        frames.save(frames.frame_path(1), frame)

        assert np.array_equal(frames.load(frames.frame_path(1)), frame)

    def test_iter_frames(self, tmp_path):
        frames = write_frames(tmp_path, count=2)
        loaded = list(frames.iter_frames())
        assert len(loaded) == 2
        assert loaded[1][1][0, 0, 0] == 40

    def test_load_invalid(self, tmp_path):
        path = tmp_path / "frame_0001.png"
        path.write_bytes(b"not an image")
        with pytest.raises(ValueError):
            FrameDirectory.load(str(path))

    def test_flush(self, tmp_path):
        frames = write_frames(tmp_path, count=3)
        assert frames.flush() == 3
        assert len(frames) == 0


class TestVideo:
    """Test cases for video extraction and encoding."""

    def test_reconstruct_then_deconstruct(self, tmp_path):
        frames = write_frames(tmp_path / "in", count=5)
        video = reconstruct_video(frames, str(tmp_path / "out" / "video.avi"), 25.0, fourcc='MJPG')

        assert os.path.isfile(video)
        assert get_video_fps(video) == pytest.approx(25.0)

        extracted = FrameDirectory(str(tmp_path / "extracted"))
        assert deconstruct_video(video, extracted) == 5
        assert os.path.basename(extracted.list_frames()[0]) == "frame_0001.png"

    def test_reconstruct_empty(self, tmp_path):
        with pytest.raises(ValueError):
            reconstruct_video(FrameDirectory(str(tmp_path)), str(tmp_path / "v.avi"), 30.0)

    def test_deconstruct_missing_video(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            deconstruct_video(str(tmp_path / "missing.mp4"), FrameDirectory(str(tmp_path)))

    def test_fps_of_invalid_video(self, tmp_path):
        path = tmp_path / "bad.mp4"
        path.write_bytes(b"garbage")
        with pytest.raises(ValueError):
            get_video_fps(str(path))
