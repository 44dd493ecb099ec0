"""
Setup script for the maris-live package.

Installs the live game core from the src/ layout. Internal modules
(_coord, _live, _realtime, _shared, _store) ship as plain source; the
public API is re-exported from maris_live/__init__.py.
"""

from setuptools import setup, find_packages

setup(
    name="maris-live",
    version="1.0.0",
    description="Live game core for a location-based educational game server",
    author="Maris Game",
    license="MIT",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
        "dev": [
            "pytest>=7.0",
            "build",
            "wheel",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Education",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: AsyncIO",
    ],
)
