"""
mediapull CLI entry point.

Usage:
    python -m mediapull fetch "/data/media/movies/Heat (1995)/Heat.mkv"
    python -m mediapull config
"""

from mediapull.cli import main

if __name__ == "__main__":
    main()
