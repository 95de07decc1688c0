"""Setup configuration for the Houston Discord bot."""

from setuptools import setup, find_packages

setup(
    name="houston",
    version="0.1.0",
    description="Rule-based Discord auto-moderation bot with a REST control plane",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
        "aiohttp>=3.9",
        "fastapi>=0.110",
        "uvicorn>=0.29",
        "pydantic>=2.6",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
            "httpx>=0.27",
        ],
    },
    entry_points={
        "console_scripts": [
            "houston=houston.main:main",
        ],
    },
)
