# setup.py
from setuptools import setup, find_packages

setup(
    name="render_scout",
    version="0.1.0",
    description="Адаптивный краулер RenderScout: классификация страниц static / hybrid / dynamic",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "pydantic>=2.5",
        "PyYAML>=6.0",
        "click>=8.1",
        "Jinja2>=3.1",
        "playwright>=1.40",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "render_scout=render_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
