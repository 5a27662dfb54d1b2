"""
Frame storage: video <-> ordered directory of image files.

Frames are written as frame_0001.png, frame_0002.png, ... and listed in order
of the number in the file name, so frame_10000.png follows frame_9999.png.
"""

import os
import re
import cv2
import numpy as np
from typing import Iterator, List, Tuple


FRAME_PATTERN = "frame_{:04d}.png"
FRAME_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff')
FRAME_NUMBER = re.compile(r"(\d+)")


class FrameDirectory:
    """An ordered directory of frame images."""

    def __init__(self, path: str, create: bool = True):
        """
        Args:
            path: Directory holding the frames
            create: Create the directory if it doesn't exist

        Raises:
            FileNotFoundError: If the directory is missing and create is False
            ValueError: If path exists but is not a directory
        """
        self.path = path

        if not os.path.exists(path):
            if not create:
                raise FileNotFoundError(f"Frame directory not found: {path}")
            os.makedirs(path)

        if not os.path.isdir(path):
            raise ValueError(f"Path is not a directory: {path}")

    def list_frames(self) -> List[str]:
        """Frame file paths sorted by frame number, then by file name."""
        names = [
            name for name in os.listdir(self.path)
            if name.lower().endswith(FRAME_EXTENSIONS)
        ]
        names.sort(key=_frame_sort_key)
        return [os.path.join(self.path, name) for name in names]

    def __len__(self):
        return len(self.list_frames())

    def frame_path(self, number: int) -> str:
        """Path for the frame with the given 1-based number."""
        return os.path.join(self.path, FRAME_PATTERN.format(number))

    @staticmethod
    def load(path: str) -> np.ndarray:
        """
        Read a frame as a BGR array.

        Raises:
            ValueError: If the file can't be decoded
        """
        frame = cv2.imread(path, cv2.IMREAD_COLOR)
        if frame is None:
            raise ValueError(f"Could not read frame: {path}")
        return frame

    @staticmethod
    def save(path: str, frame: np.ndarray) -> None:
        """
        Write a frame back to disk.

        Raises:
            IOError: If the file can't be written
        """
        if not cv2.imwrite(path, frame):
            raise IOError(f"Could not write frame: {path}")

    def iter_frames(self) -> Iterator[Tuple[str, np.ndarray]]:
        """Yield (path, frame) pairs in order, one frame in memory at a time."""
        for path in self.list_frames():
            yield path, self.load(path)

    def flush(self) -> int:
        """
        Delete all frames in the directory.

        Returns:
            Number of files removed
        """
        removed = 0
        for path in self.list_frames():
            os.remove(path)
            removed += 1
        return removed


def _frame_sort_key(name: str):
    # frame_10000.png must follow frame_9999.png
    match = FRAME_NUMBER.search(name)
    return (int(match.group(1)) if match else -1, name)


def get_video_fps(video_path: str) -> float:
    """
    Read the frame rate of a video.

    Raises:
        ValueError: If the video can't be opened or reports no frame rate
    """
    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            raise ValueError(f"Could not open video file: {video_path}")
        fps = cap.get(cv2.CAP_PROP_FPS)
    finally:
        cap.release()

    if fps is None or fps <= 0:
        raise ValueError(f"Invalid FPS: {fps}")
    return float(fps)


def deconstruct_video(video_path: str, frames: FrameDirectory) -> int:
    """
    Split a video into numbered frame images.

    Existing frames in the directory are removed first.

    Args:
        video_path: Path to input video file
        frames: Destination frame directory

    Returns:
        Number of frames written

    Raises:
        FileNotFoundError: If the video doesn't exist
        ValueError: If the video can't be opened or has no frames
    """
    if not os.path.isfile(video_path):
        raise FileNotFoundError(f"Video file not found: {video_path}")

    frames.flush()

    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise ValueError(f"Could not open video file: {video_path}")

    count = 0
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            count += 1
            frames.save(frames.frame_path(count), frame)
    finally:
        cap.release()

    if count == 0:
        raise ValueError(f"Video has no frames: {video_path}")

    return count


def reconstruct_video(frames: FrameDirectory, output_path: str,
                      fps: float, fourcc: str = 'mp4v') -> str:
    """
    Encode the frames of a directory into a video.

    Args:
        frames: Source frame directory
        output_path: Path of the video to write
        fps: Output frame rate
        fourcc: Four character codec code

    Returns:
        The output path

    Raises:
        ValueError: If there are no frames or the writer can't be opened
    """
    paths = frames.list_frames()
    if not paths:
        raise ValueError(f"No frames to encode in {frames.path}")

    first = FrameDirectory.load(paths[0])
    height, width = first.shape[:2]

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    out = cv2.VideoWriter(output_path, cv2.VideoWriter_fourcc(*fourcc),
                          fps, (width, height))
    if not out.isOpened():
        raise ValueError(f"Could not open video writer for: {output_path}")

    try:
        out.write(first)
        for path in paths[1:]:
            out.write(FrameDirectory.load(path))
    finally:
        out.release()

    return output_path
