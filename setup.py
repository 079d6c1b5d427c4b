# pattern_engine/setup.py

from setuptools import setup, find_packages

setup(
    name="pattern_engine",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "networkx",
        "astunparse",
        "python-dotenv",
        "typer",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "pattern-engine=pattern_engine.cli:app",
        ],
    },
    python_requires=">=3.9",
    description="Detection and application of design patterns over generic syntax trees",
    author="Your Name",
    author_email="your.email@example.com",
    license="MIT",
)
