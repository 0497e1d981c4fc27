"""
Rhythm Progress: adaptive progress tracking for the rhythm curriculum.

Components:
- progress: versioned progress record, migrations and the Progress Store
- analytics: per-quality mastery, review scheduling and trend detection
- curriculum: read-only lesson catalog and phase-unlock policy
- recommend: multi-strategy next-lesson recommendations
- tracker: ProgressTracker facade binding them together
"""

__version__ = "2.0.0"
