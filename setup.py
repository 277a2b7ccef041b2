"""Setup file for kgpath package."""
from setuptools import setup

with open("README.md", encoding="utf-8") as readme_file:
    readme = readme_file.read()

setup(
    name="kgpath",
    version="1.0.0",
    description="Flatten ARS knowledge graph responses and analyze paths between result nodes",
    long_description_content_type="text/markdown",
    long_description=readme,
    packages=["kgpath"],
    package_data={"kgpath": ["logging_setup.yml"]},
    include_package_data=True,
    zip_safe=False,
    license="MIT",
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "httpx>=0.27",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "pyyaml>=6.0",
        "redis>=5.0",
        "rich>=13.0",
        "typer>=0.9",
        "uvicorn>=0.23",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "pytest-httpx>=0.30",
            "fakeredis>=2.20",
        ],
    },
    entry_points={
        "console_scripts": [
            "kgpath=kgpath.cli:app",
        ],
    },
)
