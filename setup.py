"""Setup configuration for the sintese-academica backend."""
from setuptools import find_packages, setup

setup(
    name="sintese-academica",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main", "config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.111.0",
        "uvicorn>=0.29.0",
        "python-multipart>=0.0.9",
        "pydantic>=2.0",
        "requests>=2.31.0",
        "python-dotenv>=1.0.0",
        "langgraph>=0.2.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
)
