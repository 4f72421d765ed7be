#!/usr/bin/env python3
"""Setup script for LogBench"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

setup(
    name="logbench",
    version="0.1.0",
    description="Log traffic generator and replayer for benchmarking log collection agents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="LogBench Team",

    # Package configuration
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Dependencies
    install_requires=[
        "rich>=13.0.0",
        "psutil>=5.9.0",
    ],

    # Optional dependencies
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
        ],
    },

    # CLI scripts
    entry_points={
        "console_scripts": [
            "logbench=logbench.cli:main",
        ],
    },

    # Metadata
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: System Administrators",
        "Topic :: System :: Logging",
        "Topic :: System :: Benchmark",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],

    python_requires=">=3.8",

    include_package_data=True,
    zip_safe=False,
)
