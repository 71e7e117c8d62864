#!/usr/bin/env python3
"""Setup script for the Axe language server manager package."""

import sys

from setuptools import find_packages, setup

# Read version from the package
with open("axelsp/__init__.py") as f:
    for line in f:
        if line.startswith("__version__"):
            version = line.split("=")[1].strip().strip('"').strip("'")
            break
    else:
        version = "0.0.0"

# Read long description from README
with open("README.md") as f:
    long_description = f.read()

# Display a note about the server binary
print("""
NOTE: The axels language server itself is not a Python package.
It is looked up on PATH or downloaded from its GitHub releases on first use.
""", file=sys.stderr)

setup(
    name="axelsp",
    version=version,
    description="Client-side manager for the Axe language server",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pygls>=1.1.0,<2.0",
        "lsprotocol>=2023.0.0,<2024.0.0",
        "pydantic>=2.0.0",
        "click>=8.1.0",
        "httpx>=0.24.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "axelsp=axelsp.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
)
