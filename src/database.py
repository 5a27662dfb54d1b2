"""
Database module for storing tracking runs and their per-frame tracks.
"""

import sqlite3
import os
from typing import List, Dict, Optional, Sequence, Tuple


class TrackingDatabase:
    """Handles all database operations for tracking runs."""

    def __init__(self, db_path: str = "data/tracking.db", verbose: bool = True):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file (":memory:" for in-memory)
            verbose: Print a line when the database is opened
        """
        self.db_path = db_path
        self._ensure_db_directory()
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self.cursor = self.conn.cursor()
        self._create_tables()
        if verbose:
            print(f"Database initialized at {self.db_path}")

    def _ensure_db_directory(self):
        """Create database directory if it doesn't exist."""
        if self.db_path == ":memory:":
            return
        db_dir = os.path.dirname(self.db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir)

    def _create_tables(self):
        """Create database tables if they don't exist."""
        self.cursor.execute("""
            CREATE TABLE IF NOT EXISTS runs (
                run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                source TEXT NOT NULL,
                target_color TEXT NOT NULL,
                scale_ratio REAL NOT NULL,
                track_width REAL NOT NULL,
                fps REAL NOT NULL,
                frame_count INTEGER,
                status TEXT NOT NULL DEFAULT 'running',
                error TEXT,
                failed_frame INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        self.cursor.execute("""
            CREATE TABLE IF NOT EXISTS track_points (
                run_id INTEGER NOT NULL,
                frame_index INTEGER NOT NULL,
                x INTEGER NOT NULL,
                y INTEGER NOT NULL,
                speed REAL,
                PRIMARY KEY (run_id, frame_index),
                FOREIGN KEY (run_id) REFERENCES runs (run_id)
            )
        """)

        self.cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_runs_created
            ON runs(created_at)
        """)

        self.conn.commit()

    def create_run(self, source: str, target_color: str, scale_ratio: float,
                   track_width: float, fps: float,
                   frame_count: Optional[int] = None) -> int:
        """
        Record the start of a tracking run.

        Args:
            source: Video file or frame directory being tracked
            target_color: Marker color as "#rrggbb"
            scale_ratio: Pixel length of the reference scale
            track_width: Track width value of the reference scale
            fps: Frame rate used for speeds
            frame_count: Number of frames in the sequence

        Returns:
            run_id: ID of created run
        """
        self.cursor.execute("""
            INSERT INTO runs (source, target_color, scale_ratio, track_width, fps, frame_count)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (source, target_color, scale_ratio, track_width, fps, frame_count))

        self.conn.commit()
        return self.cursor.lastrowid

    def add_track(self, run_id: int, track: Sequence[Tuple[int, int]],
                  speeds: Optional[Sequence[float]] = None) -> int:
        """
        Store the track of a completed run and mark it completed.

        Args:
            run_id: ID of the run
            track: (x, y) positions, one per frame
            speeds: Optional speed per frame

        Returns:
            Number of points stored
        """
        rows = []
        for i, (x, y) in enumerate(track):
            speed = speeds[i] if speeds is not None and i < len(speeds) else None
            rows.append((run_id, i, int(x), int(y), speed))

        self.cursor.executemany("""
            INSERT INTO track_points (run_id, frame_index, x, y, speed)
            VALUES (?, ?, ?, ?, ?)
        """, rows)

        self.cursor.execute("""
            UPDATE runs SET status = 'completed', frame_count = ?
            WHERE run_id = ?
        """, (len(rows), run_id))

        self.conn.commit()
        return len(rows)

    def mark_failed(self, run_id: int, error: str,
                    failed_frame: Optional[int] = None) -> None:
        """Record why a run stopped."""
        self.cursor.execute("""
            UPDATE runs SET status = 'failed', error = ?, failed_frame = ?
            WHERE run_id = ?
        """, (error, failed_frame, run_id))
        self.conn.commit()

    def get_run(self, run_id: int) -> Optional[Dict]:
        """Get a single run, or None if it doesn't exist."""
        self.cursor.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,))
        row = self.cursor.fetchone()
        return dict(row) if row else None

    def get_all_runs(self) -> List[Dict]:
        """
        Get all tracking runs, newest first.

        Returns:
            List of run dictionaries with point counts and average speed
        """
        self.cursor.execute("""
            SELECT r.*, COUNT(p.frame_index) as points,
                   AVG(p.speed) as avg_speed,
                   MAX(p.speed) as max_speed
            FROM runs r
            LEFT JOIN track_points p ON r.run_id = p.run_id
            GROUP BY r.run_id
            ORDER BY r.run_id DESC
        """)

        return [dict(row) for row in self.cursor.fetchall()]

    def get_track(self, run_id: int) -> List[Dict]:
        """
        Get the track points of a run in frame order.

        Args:
            run_id: ID of the run

        Returns:
            List of point dictionaries
        """
        self.cursor.execute("""
            SELECT frame_index, x, y, speed FROM track_points
            WHERE run_id = ?
            ORDER BY frame_index
        """, (run_id,))

        return [dict(row) for row in self.cursor.fetchall()]

    def close(self):
        """Close database connection."""
        self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
