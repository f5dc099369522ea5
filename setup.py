from setuptools import setup, find_packages

setup(
    name="evsink",
    version="0.1.0",
    description="Append-only HTTP event sink writing rotating zstd segment files",

    package_dir={"": "src"},
    packages=find_packages(where="src"),

    install_requires=[
        "zstandard>=0.21.0",
        "pydantic>=2.0.0",
        "fastapi>=0.103.0",
        "uvicorn>=0.23.0",
        "click>=8.1.0",
        "pyyaml>=6.0",
        "prometheus-client>=0.16.0",
        "structlog>=23.1.0",
    ],

    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "httpx>=0.24.0",
            "black>=23.3.0",
            "mypy>=1.3.0",
            "ruff>=0.0.270",
        ],
    },

    entry_points={
        "console_scripts": [
            "evsink=evsink.cli.main:cli",
        ],
    },

    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.11",
    ],
)
