"""Setup file for development installation."""

from setuptools import setup, find_packages

setup(
    name="gws-pilot-chat",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "structlog",
        "httpx",
        "google-generativeai",
        "prometheus-client",
        "opentelemetry-instrumentation-fastapi",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
)
