"""
Setup script for rhythm-progress.

Rhythm Progress is the learning-progress tracker and lesson recommender
behind the rhythm transcription curriculum. It serves three roles:

1. Progress Store - Versioned, migratable record of lesson and skill results
2. Analytics - Skill mastery, review scheduling and trend detection
3. Recommender - Phase-gated, prerequisite-aware next-lesson selection

The 'rhythm' command is the terminal entry point.
"""

from setuptools import find_packages, setup

setup(
    name="rhythm-progress",
    version="2.0.0",
    description="Adaptive progress tracking and lesson recommendations for a rhythm curriculum",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Rhythm Curriculum",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rhythm=rhythm_progress.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition progress-tracking rhythm education",
)
