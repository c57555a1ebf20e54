"""
Paper Trading Engine
Indicator-driven trade lifecycle management for a crypto paper trading board
"""

from setuptools import setup, find_packages

setup(
    name="paper-trading-engine",
    version="0.1.0",
    description="Crypto paper trading engine with staged risk controls",
    python_requires=">=3.10",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        line.strip()
        for line in open("requirements.txt")
        if line.strip() and not line.startswith("#")
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "paper-engine=scripts.run_engine:main",
        ]
    },
)
