"""
setup.py for the kinmpc Python package.

Sources live under python/; install for development with:
    pip install -e ".[dev]"
"""

from setuptools import find_packages, setup

setup(
    name="kinmpc",
    version="0.1.0",
    description="Kinematic model predictive control for vehicle path following",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.20",
        "scipy>=1.7",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "hypothesis>=6.0",
            "black>=23.0",
            "ruff>=0.1.0",
            "mypy>=1.0",
        ],
    },
)
