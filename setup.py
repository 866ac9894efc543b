"""
Setup script for practice-engine.

The practice engine runs timed quiz sessions for students:

1. Session Store - start, resume, answer, navigate and complete sessions
2. Session Limit Gate - daily quota per subscription tier
3. HTTP API and admin CLI on top of a PostgreSQL persistence gateway

The 'practice' command is the admin entry point.
"""

from setuptools import find_packages, setup

setup(
    name="practice-engine",
    version="1.0.0",
    description="Practice session engine for quiz-based learning",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy[asyncio]>=2.0.0,<2.1",
        "psycopg2-binary>=2.9.0",
        "asyncpg>=0.28.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # HTTP
        "fastapi>=0.100.0",
        "uvicorn>=0.23.0",
        "httpx>=0.25.0",
        # Time zones
        "pytz>=2023.3",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "practice=practice_engine.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning practice quiz sessions education",
)
