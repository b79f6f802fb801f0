"""
Setup script for Timeline Agent - connectors streaming remote records as timeline items.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="timeline-agent",
    version="1.0.0",
    description="Rate-limited, paginated data source connectors for the Timeline Agent",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Timeline Agent Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        # HTTP clients
        "httpx>=0.25.0",
        "aiohttp>=3.9.0",

        # Data validation
        "pydantic>=2.5.0",

        # Monitoring and observability
        "prometheus-client>=0.19.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "ruff>=0.1.8",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Internet :: WWW/HTTP",
    ],
    include_package_data=True,
    zip_safe=False,
)
