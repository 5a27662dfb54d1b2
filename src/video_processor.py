"""
Main video processing module that orchestrates frame extraction, point
tracking, annotation, run storage and video re-encoding.
"""

import os
import argparse
import dataclasses
import json
from typing import Dict, Optional, Tuple

from color_model import Color, sample_color
from database import TrackingDatabase
from frame_store import FrameDirectory, deconstruct_video, reconstruct_video, get_video_fps
from point_tracker import PointTracker, TrackingConfig, InvalidConfig, SearchExhausted
from speed_calculator import SpeedCalculator


OUTPUT_VIDEO_NAME = "output-video.mp4"


class VideoProcessor:
    """Main processor for tracking a marker through a video."""

    def __init__(self,
                 db: Optional[TrackingDatabase] = None,
                 db_path: str = "data/tracking.db",
                 use_db: bool = True,
                 frames_dir: str = "data/frames",
                 verbose: bool = True):
        """
        Initialize video processor with dependency injection.

        Args:
            db: TrackingDatabase instance (creates default if None and use_db=True)
            db_path: Path to SQLite database (used only if db is None)
            use_db: Store runs and tracks in the database
            frames_dir: Working directory for extracted frames
            verbose: Print progress
        """
        self.db = db if db is not None else (TrackingDatabase(db_path) if use_db else None)
        self.frames_dir = frames_dir
        self.verbose = verbose
        self.tracker: Optional[PointTracker] = None

    def _log(self, message: str = ""):
        if self.verbose:
            print(message)

    def process_frames(self,
                       frames_dir: str,
                       config: TrackingConfig,
                       source: Optional[str] = None,
                       pick_point: Optional[Tuple[int, int]] = None,
                       track_json: Optional[str] = None) -> Dict:
        """
        Track the marker through a directory of frames, annotating in place.

        Args:
            frames_dir: Directory of ordered frame images
            config: Tracking settings
            source: Label stored with the run (defaults to frames_dir)
            pick_point: (x, y) in the first frame to take the target color from,
                used when config has no target color
            track_json: Optional path to write the raw track as JSON

        Returns:
            Dictionary with processing results

        Raises:
            FileNotFoundError: If the frame directory doesn't exist
            InvalidConfig: If the settings are unusable or there are no frames
        """
        frames = FrameDirectory(frames_dir, create=False)
        paths = frames.list_frames()

        if not paths:
            raise InvalidConfig(f"No frames found in {frames_dir}")

        if config.target_color is None and pick_point is not None:
            color = sample_color(FrameDirectory.load(paths[0]), *pick_point)
            config = dataclasses.replace(config, target_color=color)
            self._log(f"Tracking: {color}")

        config.validate()

        run_id = None
        if self.db is not None:
            run_id = self.db.create_run(
                source=source or frames_dir,
                target_color=config.target_color.hex,
                scale_ratio=config.scale_ratio,
                track_width=config.track_width,
                fps=config.fps,
                frame_count=len(paths)
            )

        self._log(f"Step 2: Tracking {config.target_color} through {len(paths)} frames...")
        self.tracker = PointTracker(config, verbose=self.verbose)

        written = []

        def write_back(index, frame):
            FrameDirectory.save(paths[index], frame)
            written.append(index)

        try:
            track = self.tracker.track_sequence(
                (FrameDirectory.load(path) for path in paths),
                on_frame=write_back,
                total=len(paths)
            )
        except SearchExhausted as e:
            self._log(f"ERROR: Tracking failed: {e}")
            if run_id is not None:
                self.db.mark_failed(run_id, str(e), e.frame_index)
            return {
                "success": False,
                "error": str(e),
                "run_id": run_id,
                "frame_index": e.frame_index,
                "last_position": tuple(e.last_position) if e.last_position is not None else None,
                "frames_processed": len(self.tracker.track)
            }
        except (ValueError, IOError) as e:
            self._log(f"ERROR: Frame I/O failed: {e}")
            if run_id is not None:
                self.db.mark_failed(run_id, str(e), len(written))
            raise

        self._log(f"✓ Marker tracked in {len(track)} frames\n")

        speed_calc = SpeedCalculator(fps=config.fps,
                                     scale_ratio=config.scale_ratio,
                                     track_width=config.track_width)
        stats = speed_calc.get_statistics(track)
        speeds = self.tracker.speeds or speed_calc.speed_profile(track)

        if run_id is not None:
            self.db.add_track(run_id, track, speeds)
            self._log(f"✓ Run saved with ID: {run_id}")

        if track_json:
            with open(track_json, "w") as f:
                json.dump({
                    "target_color": config.target_color.hex,
                    "fps": config.fps,
                    "points": [[p.x, p.y] for p in track],
                    "speeds": speeds
                }, f, indent=2)
            self._log(f"✓ Track written to {track_json}")

        return {
            "success": True,
            "run_id": run_id,
            "frames_processed": len(track),
            "track": [tuple(p) for p in track],
            "speeds": speeds,
            "statistics": stats
        }

    def process_video(self,
                      video_path: str,
                      config: TrackingConfig,
                      output_dir: Optional[str] = None,
                      use_video_fps: bool = True,
                      keep_frames: bool = False,
                      pick_point: Optional[Tuple[int, int]] = None,
                      track_json: Optional[str] = None) -> Dict:
        """
        Process a video end-to-end: extract, track, annotate, re-encode.

        Args:
            video_path: Path to input video file
            config: Tracking settings
            output_dir: Directory for the annotated video (None to skip encoding)
            use_video_fps: Replace config.fps with the video's frame rate
            keep_frames: Leave the extracted frames on disk after a successful run
                (frames of a failed run are always kept)
            pick_point: (x, y) in the first frame to take the target color from
            track_json: Optional path to write the raw track as JSON

        Returns:
            Dictionary with processing results

        Raises:
            FileNotFoundError: If video file doesn't exist
            ValueError: If the video can't be read or the settings are invalid
        """
        if not isinstance(video_path, str) or not video_path.strip():
            raise ValueError(f"Invalid video path: {video_path}")

        if not os.path.exists(video_path):
            raise FileNotFoundError(f"Video file not found: {video_path}")

        if not os.path.isfile(video_path):
            raise ValueError(f"Path is not a file: {video_path}")

        self._log(f"\n{'='*60}")
        self._log(f"Processing video: {os.path.basename(video_path)}")
        self._log(f"{'='*60}\n")

        if use_video_fps:
            config = dataclasses.replace(config, fps=get_video_fps(video_path))

        frames = FrameDirectory(self.frames_dir)

        self._log("Step 1: Extracting frames...")
        count = deconstruct_video(video_path, frames)
        self._log(f"✓ Extracted {count} frames at {config.fps:.2f} FPS\n")

        # Frames stay in frames_dir unless the run succeeded
        result = self.process_frames(
            self.frames_dir, config,
            source=video_path,
            pick_point=pick_point,
            track_json=track_json
        )

        result["output_video"] = None
        if result["success"]:
            if output_dir is not None:
                self._log("Step 3: Reconstructing video...")
                output_path = reconstruct_video(
                    frames, os.path.join(output_dir, OUTPUT_VIDEO_NAME), config.fps)
                result["output_video"] = output_path
                self._log(f"✓ Annotated video saved to: {output_path}\n")

            if not keep_frames:
                frames.flush()
        else:
            self._log(f"Frames kept for inspection in: {self.frames_dir}")

        self._log(f"{'='*60}")
        self._log("Processing complete!" if result["success"] else "Processing stopped.")
        self._log(f"{'='*60}\n")

        return result

    def close(self):
        """Close database connection."""
        if self.db is not None:
            self.db.close()


def _parse_point(text: str) -> Tuple[int, int]:
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"Invalid point: {text}. Expected 'x,y'.")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid point: {text}. Expected integers.")


def _parse_color(text: str) -> Color:
    try:
        return Color.parse(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def main():
    """Command-line interface for point tracking."""
    parser = argparse.ArgumentParser(
        description="Track a uniquely colored marker through a video and annotate its speed"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--video", "-v",
        help="Path to video file"
    )
    source.add_argument(
        "--frames", "-f",
        help="Path to a directory of already extracted frames (annotated in place)"
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--color", "-c",
        type=_parse_color,
        help="Target marker color as 'r,g,b' or '#rrggbb'"
    )
    target.add_argument(
        "--pick-color",
        type=_parse_point,
        metavar="X,Y",
        help="Take the target color from this pixel of the first frame"
    )
    scale = parser.add_mutually_exclusive_group()
    scale.add_argument(
        "--scale-ratio",
        type=float,
        default=1.0,
        help="Pixel length of the reference scale (default: 1)"
    )
    scale.add_argument(
        "--scale-points",
        type=_parse_point,
        nargs=2,
        metavar="X,Y",
        help="Two ends of the reference scale in the first frame"
    )
    parser.add_argument(
        "--track-width",
        type=float,
        default=1.0,
        help="Track width value of the reference scale (default: 1)"
    )
    parser.add_argument(
        "--fps",
        type=float,
        help="Frame rate for speeds (default: read from video, 30 for frames)"
    )
    parser.add_argument(
        "--output", "-o",
        help="Directory to write the annotated video to"
    )
    parser.add_argument(
        "--work-dir",
        default="data/frames",
        help="Working directory for extracted frames"
    )
    parser.add_argument(
        "--keep-frames",
        action="store_true",
        help="Keep extracted frames after processing"
    )
    parser.add_argument(
        "--track-json",
        help="Write the raw track to this JSON file"
    )
    parser.add_argument(
        "--db",
        default="data/tracking.db",
        help="Path to the tracking database"
    )
    parser.add_argument(
        "--no-db",
        action="store_true",
        help="Don't store the run in the database"
    )

    args = parser.parse_args()

    if args.scale_points:
        try:
            scale_ratio = SpeedCalculator.scale_ratio_from_points(*args.scale_points)
        except ValueError as e:
            parser.error(str(e))
    else:
        scale_ratio = args.scale_ratio

    config = TrackingConfig(
        target_color=args.color,
        scale_ratio=scale_ratio,
        track_width=args.track_width,
        fps=args.fps if args.fps is not None else 30.0
    )

    processor = VideoProcessor(
        db_path=args.db,
        use_db=not args.no_db,
        frames_dir=args.work_dir
    )

    try:
        if args.video:
            result = processor.process_video(
                video_path=args.video,
                config=config,
                output_dir=args.output,
                use_video_fps=args.fps is None,
                keep_frames=args.keep_frames,
                pick_point=args.pick_color,
                track_json=args.track_json
            )
        else:
            result = processor.process_frames(
                args.frames,
                config,
                pick_point=args.pick_color,
                track_json=args.track_json
            )

        if result["success"]:
            stats = result["statistics"]
            print("\nResults:")
            print(f"  Frames tracked: {result['frames_processed']}")
            if "average_speed" in stats:
                print(f"  Average speed: {stats['average_speed']} tw/s")
                print(f"  Max speed: {stats['max_speed']} tw/s")
            if result.get("output_video"):
                print(f"  Output video: {result['output_video']}")
        else:
            print(f"\nProcessing failed: {result.get('error', 'Unknown error')}")
            raise SystemExit(1)

    except (FileNotFoundError, ValueError) as e:
        print(f"\nError: {e}")
        raise SystemExit(1)

    finally:
        processor.close()


if __name__ == "__main__":
    main()
