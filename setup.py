"""
ariaeye - Setup Configuration

Find and drive web page elements from plain-language descriptions, using
accessibility-tree snapshots and a semantic store of element descriptions.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Core dependencies
core_deps = [
    # Framework core
    "pydantic>=2.11.9",
    "aiohttp>=3.12.15",
    "pyyaml>=6.0.2",
    # Browser automation
    "playwright>=1.55.0",
    "beautifulsoup4>=4.14.2",
    "lxml>=6.0.2",  # Fast HTML parsing for in-memory documents
]

# Development dependencies
dev_deps = [
    # Testing
    "pytest>=8.4.1",
    "pytest-asyncio>=1.0.0",
    "pytest-cov>=6.2.1",
]

setup(
    name="ariaeye",
    version="0.1.0",

    # Package description
    description="Locate and act on web page elements from natural-language descriptions via accessibility snapshots",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(where="src"),
    package_dir={"": "src"},

    # Python version requirement
    python_requires=">=3.11",

    # Dependencies
    install_requires=core_deps,

    # Optional dependencies (extras)
    extras_require={
        "core": core_deps,
        "dev": core_deps + dev_deps,
    },

    # PyPI classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Programming Language :: Python :: 3 :: Only",
        "Topic :: Software Development :: Testing",
        "Topic :: Internet :: WWW/HTTP :: Browsers",
        "Framework :: AsyncIO",
    ],

    keywords=[
        "accessibility", "aria", "playwright", "browser-automation",
        "semantic-search", "embeddings", "web-agents",
    ],

    include_package_data=True,
    zip_safe=False,
)
