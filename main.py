"""
Examwatch - Main Entry Point

Usage:
    python main.py                     # Monitor the default camera
    python main.py --source 1          # Use another camera
    python main.py --no-objects        # Faces and behavior only

Violations are printed as they occur; critical ones report when resolved.
"""
from __future__ import annotations

from examwatch.cli import main


if __name__ == "__main__":
    main()
