"""Setup configuration for the AttachGuard Discord bot."""

from setuptools import setup, find_packages

setup(
    name="attachguard",
    version="0.1.0",
    description="A Discord bot that enforces per-guild attachment and media link rules",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiosqlite>=0.20",
        "redis>=5.0",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "attachguard=attachguard.main:main",
        ],
    },
)
