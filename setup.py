# setup.py
from setuptools import setup, find_packages

setup(
    name="graphscape",
    version="0.1.0",
    description="Graph layout and topology analysis engine for node-link viewers",
    author="Swift Fox",
    packages=find_packages(
        exclude=(
            "tests",
            "tests.*",
            "docs",
            "build",
            "dist",
        )
    ),
    install_requires=[
        "networkx>=3.0",
        "numpy>=1.24",
        "scipy>=1.11",
        "pandas>=2.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
)
