"""Setup configuration for devtools-sniffer.

- Package as "devtools-sniffer" for pip installation
- Support development mode (pip install -e .)
- Support production installation (pip install .)
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text() if readme_path.exists() else ""

# Read requirements.txt for dependencies
requirements_path = Path(__file__).parent / "requirements.txt"
requirements = []
if requirements_path.exists():
    requirements = [
        line.strip()
        for line in requirements_path.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]

# Read requirements-dev.txt for development dependencies
dev_requirements_path = Path(__file__).parent / "requirements-dev.txt"
dev_requirements = []
if dev_requirements_path.exists():
    dev_requirements = [
        line.strip()
        for line in dev_requirements_path.read_text().splitlines()
        if line.strip() and not line.startswith("#")
    ]

setup(
    name="devtools-sniffer",
    version="0.1.0",
    description="Run an inspector panel audit over CDP and capture its report",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="devtools-sniffer contributors",
    license="MIT",

    # Package discovery
    packages=find_packages(include=["devtools_sniffer", "devtools_sniffer.*"]),

    # Dependencies
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
        "test": dev_requirements,
    },

    # CLI entry point
    entry_points={
        "console_scripts": [
            "devtools-sniffer=devtools_sniffer.cli.main:main",
        ],
    },

    # Python version requirement
    python_requires=">=3.10",

    # PyPI classifiers
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Topic :: Software Development :: Testing",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
    ],

    keywords="chrome devtools cdp inspector audit automation",
)
