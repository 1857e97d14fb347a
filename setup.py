#!/usr/bin/env python3
"""
Packaging for multicopy.

Installs the ``multicopy`` package from ``src/`` together with the
``multicopy`` console command.
"""

from pathlib import Path
from setuptools import setup, find_packages

HERE = Path(__file__).parent


def read_requirements(name: str) -> list[str]:
    """Return the non-comment lines of a requirements file, if it exists."""
    path = HERE / name
    if not path.exists():
        return []
    lines = (line.strip() for line in path.read_text(encoding="utf-8").splitlines())
    return [line for line in lines if line and not line.startswith("#")]


readme = HERE / "README.md"

setup(
    name="multicopy",
    version="2.0.0",
    author="multicopy project",
    description="Copy a file or directory tree to several destinations in one pass",
    long_description=readme.read_text(encoding="utf-8") if readme.exists() else "",
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=read_requirements("requirements.txt"),
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "black>=22.0.0",
            "flake8>=4.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "multicopy=multicopy.cli:main",
        ],
    },
    classifiers=[
        "Environment :: Console",
        "Operating System :: POSIX",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Archiving :: Backup",
    ],
    keywords="copy fan-out backup tree",
)
