# setup.py
from setuptools import setup, find_packages

setup(
    name="krakenclip",
    version="0.2.0",
    description="Toolkit for Kraken2 reports, classification logs and sequence files",
    author="KrakenClip Contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "krakenclip=krakenclip.cli:main",
        ],
    },
    install_requires=[
        "numpy>=1.17",
        "pandas>=1.1",
        "biopython",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
