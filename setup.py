"""
Archivist setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="archivist",
    version="1.0.0",
    description="Archivist — archive navigation and resource aggregation engine",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "archivist=archivist.cli:main",
        ],
    },
    install_requires=[
        "pydantic>=2.5",
        "redis>=5.0",
        "networkx>=3.2",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)
