"""
Setup script for the Print Dispatch Engine

Automatic print job dispatch for small printer fleets: waiting jobs are
matched to eligible printers under a system-wide concurrency ceiling.
"""

from setuptools import setup, find_packages
import pathlib

here = pathlib.Path(__file__).parent.resolve()

# Get the long description from the README file
try:
    long_description = (here / "README.md").read_text(encoding="utf-8")
except FileNotFoundError:
    long_description = """
    Print Dispatch Engine

    Automatic print job dispatch for small printer fleets: waiting jobs are
    matched to online printers with enough paper and ink, in priority order,
    under a system-wide ceiling on concurrent prints.
    """

setup(
    name="print-dispatch-engine",
    version="1.0.0",
    description="Automatic print job dispatch for small printer fleets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Print Dispatch Engine Team",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Printing",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: System :: Systems Administration",
    ],
    keywords="printing, print queue, dispatch, scheduling, printer fleet, async",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        # Core dependencies
        "click>=8.0.0",

        # Configuration and serialization
        "pyyaml>=6.0",
        "pydantic>=2.0.0",

        # Monitoring
        "prometheus-client>=0.17.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=1.0.0",
            "coverage>=6.0.0",
            "flake8>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "print-dispatch=print_dispatch_engine.cli.main:main",
            "pde=print_dispatch_engine.cli.main:main",
        ],
    },
)
