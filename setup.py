# setup.py
from setuptools import setup, find_packages

setup(
    name="entity_probe",
    version="0.1.0",
    description="Bounded, SSRF-safe web entity prober",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"entity_probe.report": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "click>=8.1",
        "dnspython>=2.4",
        "Jinja2>=3.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["entity-probe=entity_probe.cli:cli"],
    },
    python_requires=">=3.11",
)
